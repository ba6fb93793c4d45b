"""Error hierarchy tests — codes, statuses and the REST envelope."""

from tierbroker.core.errors import (
    CircularHierarchyError,
    CodeGenerationExhaustedError,
    ConcurrencyConflictError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    FeeIssuerMismatchError,
    InvalidOrInactiveCodeError,
    NotOwnerError,
    RateConfigInvalidError,
    TierBrokerError,
    WordCountOutOfRangeError,
)


def test_all_errors_share_base():
    for exc in (
        InvalidOrInactiveCodeError(),
        NotOwnerError("c1"),
        CircularHierarchyError("a", "b"),
        ConcurrencyConflictError("busy"),
    ):
        assert isinstance(exc, TierBrokerError)


def test_domain_errors_are_client_errors():
    assert InvalidOrInactiveCodeError().http_status == 400
    assert NotOwnerError("c1").http_status == 403
    assert CircularHierarchyError("a", "b").http_status == 409
    assert WordCountOutOfRangeError(0, 1, 20_000).http_status == 400
    assert FeeIssuerMismatchError("i1", "i2").http_status == 409


def test_infrastructure_errors_are_server_errors():
    assert DatabaseError("down", "execute").http_status == 503
    assert CodeGenerationExhaustedError(10).http_status == 503


def test_to_response_envelope():
    exc = RateConfigInvalidError(
        ["rate_per_500_words must be positive"],
        ErrorContext(actor_id="issuer-1"),
    )
    body = exc.to_response()["error"]
    assert body["code"] == "RATE_CONFIG_INVALID"
    assert body["category"] == ErrorCategory.VALIDATION.value
    assert body["context"]["actor_id"] == "issuer-1"
    assert "must be positive" in body["message"]
