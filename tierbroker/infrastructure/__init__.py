"""Infrastructure Layer — database session management, logging and sink implementations.

Invariants:
    - Store exceptions are mapped to DatabaseError before reaching services' callers
    - Sink implementations satisfy the Protocols in core/repository_protocols.py

Design Decisions:
    - Concrete IO lives here so services depend on protocols and sessions only
"""
