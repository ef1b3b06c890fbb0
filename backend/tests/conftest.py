"""Root conftest — shared test configuration."""

import os

# Never reach a real chain or database from the test suite
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LEDGER_BACKEND", "memory")
os.environ.setdefault("CHAIN_RPC_URL", "http://chain.test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("LOG_FORMAT", "text")
