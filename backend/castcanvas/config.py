"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - payment_wallet / contract_address are stored in EIP-55 checksum form
    - Deploy-time constants (canvas size, limits, price) are fixed for the process lifetime

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: memory backends work out-of-the-box
    - price_per_purchase is a Decimal in ether; price_wei derived once (no float rounding)
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from web3 import Web3

from castcanvas.core.domain_types import LedgerBackend, StoreBackend


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Canvas & quota
    canvas_size: int = 1000
    daily_pixel_limit: int = 5
    pixels_per_purchase: int = 10
    price_per_purchase: Decimal = Decimal("0.001")

    # Payments
    payment_wallet: str = "0x7b3E1E2c2a6B2a6d5a1f2E6E0a5D3c2B1A0f9E8D"
    required_chain_id: int = 8453
    require_sender_match: bool = True

    # Chain RPC
    chain_rpc_url: str = "https://mainnet.base.org"
    chain_rpc_timeout_seconds: float = 10.0

    # Backends
    store_backend: StoreBackend = StoreBackend.MEMORY
    ledger_backend: LedgerBackend = LedgerBackend.MEMORY

    # Database
    database_url: str = (
        "postgresql+asyncpg://castcanvas:castcanvas@db:5432/castcanvas"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Contract backend
    contract_address: str | None = None
    contract_owner_private_key: str | None = None
    contract_tx_timeout_seconds: float = 60.0

    @field_validator("payment_wallet", "contract_address")
    @classmethod
    def checksum_address(
        cls, v: str | None, info: ValidationInfo,
    ) -> str | None:
        if v is None or v == "":
            if info.field_name == "payment_wallet":
                raise ValueError("payment_wallet is required")
            return None
        if not Web3.is_address(v.lower()):
            raise ValueError(f"not an EVM address: {v}")
        return Web3.to_checksum_address(v.lower())

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def price_wei(self) -> int:
        return int(Web3.to_wei(self.price_per_purchase, "ether"))

    @property
    def uses_database(self) -> bool:
        return (
            self.store_backend is StoreBackend.DATABASE
            or self.ledger_backend is LedgerBackend.DATABASE
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
