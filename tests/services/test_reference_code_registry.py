"""Reference Code Registry — issuing, validating, deactivating and usage reporting.

Invariants:
    - Issued codes follow <PREFIX>-<8 hex> with the prefix for owner role + purpose
    - Collisions retry with a fresh suffix, then fail with CodeGenerationExhaustedError
    - validate() is case/whitespace-insensitive and never resolves inactive codes
    - Only the owner deactivates a code or reads its usage
"""

import re
from uuid import uuid4

import pytest

from tierbroker.core.domain_types import Role, CodePurpose
from tierbroker.core.errors import (
    CodeGenerationExhaustedError, NotOwnerError, ResourceNotFoundError,
    UnauthorizedError,
)
from tierbroker.services.reference_code_registry import ReferenceCodeRegistry
from tests.services.hierarchy_builders import make_actor


async def test_issue_uses_role_prefix(test_db):
    root = await make_actor(test_db, Role.ROOT)

    code = await ReferenceCodeRegistry(test_db).issue(
        root, CodePurpose.ISSUER_RECRUITMENT,
    )

    assert re.fullmatch(r"RT-ISS-[0-9A-F]{8}", code.code)
    assert code.owner_id == root
    assert code.active is True


async def test_issue_for_actor_covers_each_eligible_purpose(test_db):
    registry = ReferenceCodeRegistry(test_db)
    counts = {}
    for role in Role:
        owner = await make_actor(test_db, role)
        counts[role] = len(await registry.issue_for_actor(owner))

    assert counts == {
        Role.ROOT: 2, Role.ISSUER: 1, Role.SUBISSUER: 1,
        Role.FULFILLER: 0, Role.CLIENT: 0,
    }


async def test_client_cannot_issue_codes(test_db):
    client = await make_actor(test_db, Role.CLIENT)

    with pytest.raises(UnauthorizedError):
        await ReferenceCodeRegistry(test_db).issue(
            client, CodePurpose.CLIENT_RECRUITMENT,
        )


async def test_collision_retries_with_new_suffix(test_db):
    root = await make_actor(test_db, Role.ROOT)
    suffixes = iter(["DEADBEEF", "DEADBEEF", "DEADBEEF", "CAFEBABE"])
    registry = ReferenceCodeRegistry(test_db, suffix_generator=lambda: next(suffixes))

    first = await registry.issue(root, CodePurpose.ISSUER_RECRUITMENT)
    second = await registry.issue(root, CodePurpose.ISSUER_RECRUITMENT)

    assert first.code == "RT-ISS-DEADBEEF"
    assert second.code == "RT-ISS-CAFEBABE"


async def test_collision_exhaustion_raises(test_db):
    root = await make_actor(test_db, Role.ROOT)
    registry = ReferenceCodeRegistry(
        test_db, suffix_generator=lambda: "DEADBEEF", max_attempts=3,
    )
    await registry.issue(root, CodePurpose.ISSUER_RECRUITMENT)

    with pytest.raises(CodeGenerationExhaustedError):
        await registry.issue(root, CodePurpose.ISSUER_RECRUITMENT)

    assert len(await registry.list_for_owner(root)) == 1


async def test_validate_normalizes_input(test_db):
    root = await make_actor(test_db, Role.ROOT)
    registry = ReferenceCodeRegistry(test_db)
    issued = await registry.issue(root, CodePurpose.CLIENT_RECRUITMENT)
    code_text, code_id = issued.code, issued.id

    result = await registry.validate(f"  {code_text.lower()} ")

    assert result is not None
    assert result.code_id == code_id
    assert result.owner_id == root
    assert result.purpose == CodePurpose.CLIENT_RECRUITMENT


@pytest.mark.parametrize("raw", ["", "nonsense", "RT-ISS-XYZ", "RT-ISS-00000000"])
async def test_validate_unknown_or_malformed_is_none(test_db, raw):
    assert await ReferenceCodeRegistry(test_db).validate(raw) is None


async def test_deactivated_code_no_longer_validates(test_db):
    root = await make_actor(test_db, Role.ROOT)
    registry = ReferenceCodeRegistry(test_db)
    issued = await registry.issue(root, CodePurpose.ISSUER_RECRUITMENT)
    code_text = issued.code

    deactivated = await registry.deactivate(issued.id, root)

    assert deactivated.active is False
    assert deactivated.deactivated_at is not None
    assert await registry.validate(code_text) is None


async def test_deactivate_requires_owner(test_db):
    root = await make_actor(test_db, Role.ROOT)
    other = await make_actor(test_db, Role.ROOT)
    registry = ReferenceCodeRegistry(test_db)
    issued = await registry.issue(root, CodePurpose.ISSUER_RECRUITMENT)
    code_id, code_text = issued.id, issued.code

    with pytest.raises(NotOwnerError):
        await registry.deactivate(code_id, other)

    assert await registry.validate(code_text) is not None


async def test_deactivate_unknown_code(test_db):
    root = await make_actor(test_db, Role.ROOT)

    with pytest.raises(ResourceNotFoundError):
        await ReferenceCodeRegistry(test_db).deactivate(uuid4(), root)


async def test_usage_stats_counts_redemptions(test_db, tree):
    registry = ReferenceCodeRegistry(test_db)
    [issuer_code] = await registry.list_for_owner(tree.issuer)

    stats = await registry.usage_stats(issuer_code.id, tree.issuer)

    assert stats.total_uses == 1
    assert stats.recent_uses == 1
    assert stats.last_used is not None


async def test_usage_stats_hidden_from_non_owner(test_db, tree):
    registry = ReferenceCodeRegistry(test_db)
    [issuer_code] = await registry.list_for_owner(tree.issuer)

    with pytest.raises(NotOwnerError):
        await registry.usage_stats(issuer_code.id, tree.root)
