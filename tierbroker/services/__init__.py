"""Services Layer — async operations over the store, one service per concern.

Invariants:
    - Services take an AsyncSession (and sinks) by constructor injection
    - Decisions are delegated to core/; services load, lock and persist

Design Decisions:
    - HierarchyAssignmentService is the only writer of hierarchy edges
"""
