"""Core Layer — pure graph and metrics logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from the async shell: cycle search, paths, heuristics
      and aggregation are testable without a database
"""
