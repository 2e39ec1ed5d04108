"""Services Layer — async graph operations over the database and the AI classifier.

Invariants:
    - Every relationship write goes through RelationshipStore (locks, cycle guard, paths)
    - Services share the caller's AsyncSession; they never open their own

Design Decisions:
    - ContentGraphService is the single facade routes depend on
"""
