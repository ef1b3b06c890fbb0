"""Canvas Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - PixelPlacement enforces types and presence only; bounds and colour format are
      enforced by the CanvasStore (one rule set for API and service callers)
    - PurchaseSubmission accepts `proofId` or the legacy `transactionHash` key

Design Decisions:
    - Strict ints for coordinates: 3.5 is rejected, not floored
    - field_validator for side-effect-free transforms (strip) — keeps models pure
"""

from pydantic import AliasChoices, BaseModel, Field, StrictInt, field_validator


class PixelPlacement(BaseModel):
    """POST /canvas body."""
    x: StrictInt
    y: StrictInt
    color: str = Field(min_length=1, max_length=16)
    user: str = Field(min_length=1, max_length=128)

    @field_validator("user", "color")
    @classmethod
    def strip_value(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("value cannot be empty or whitespace")
        return v


class PurchaseSubmission(BaseModel):
    """POST /canvas/purchase body."""
    user: str = Field(min_length=1, max_length=128)
    proof_id: str = Field(
        min_length=1, max_length=80,
        validation_alias=AliasChoices("proofId", "transactionHash", "proof_id"),
    )
