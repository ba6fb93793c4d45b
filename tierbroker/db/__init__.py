"""Database Layer — declarative Base and async session factory.

Invariants:
    - All sessions are async (AsyncSession)
    - Every ORM model registers on the single Base.metadata

Design Decisions:
    - asyncpg driver for PostgreSQL in production, aiosqlite in tests
      (ADR: same async API on both, no sync code path)
"""
