"""Services Layer — stores, ledgers, payment verification and placement orchestration.

Invariants:
    - Services depend on core Protocols, never on a sibling backend directly
    - Every shared-state mutation happens under a per-key lock or an atomic SQL statement

Design Decisions:
    - One file per component for locality; backends for the same Protocol share a file
"""
