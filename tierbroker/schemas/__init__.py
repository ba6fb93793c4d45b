"""Pydantic Schemas — response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (API responses)
    - Domain types from core/ converted via from_* constructors, never ORM rows

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
