"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external calls wrapped with timeout/error mapping to core/errors.py types

Design Decisions:
    - Thin wrappers over raw clients (httpx, web3, SQLAlchemy): one place per dependency
"""
