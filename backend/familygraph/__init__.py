"""Content Family Graph — typed relationship graph over a creator's cross-platform content.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
