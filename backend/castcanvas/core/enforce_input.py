"""Input Enforcement — validates coordinates, colours, identities and proof ids.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Raise InvalidInputError on violation, return the normalized value on success
    - validate_placement chains all pixel checks — first error wins

Design Decisions:
    - Exceptions (not error dicts): callers are services, not an agent loop, and the
      global handler already turns CastCanvasError into the REST envelope
    - EVM addresses are normalized to EIP-55 checksum form so "0xab.." and "0xAB.."
      share one quota; any other non-empty identity is an opaque key kept verbatim
"""

import re

from web3 import Web3

from castcanvas.core.domain_types import ProofId, UserId
from castcanvas.core.errors import InvalidInputError

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
PROOF_ID_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


def check_coordinates(x: int, y: int, canvas_size: int) -> None:
    """Both coordinates must be integers inside [0, canvas_size)."""
    for name, value in (("x", x), ("y", y)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInputError(f"{name} must be an integer", name)
        if not 0 <= value < canvas_size:
            raise InvalidInputError(
                f"Coordinates out of bounds: {name}={value} "
                f"(canvas is {canvas_size}x{canvas_size})",
                name,
            )


def check_color(color: str) -> None:
    if not isinstance(color, str) or not COLOR_PATTERN.match(color):
        raise InvalidInputError(
            "Invalid color format, expected #RRGGBB", "color",
        )


def validate_placement(x: int, y: int, color: str, canvas_size: int) -> None:
    check_coordinates(x, y, canvas_size)
    check_color(color)


def normalize_user(user: str, field: str = "user") -> UserId:
    """Checksum EVM addresses; keep other identities as opaque keys."""
    if not isinstance(user, str) or not user.strip():
        raise InvalidInputError(f"{field} is required", field)
    user = user.strip()
    # lower() first: a mixed-case string with a bad checksum is still an address
    if Web3.is_address(user.lower()):
        return UserId(Web3.to_checksum_address(user.lower()))
    return UserId(user)


def require_address(user: str, field: str = "user") -> UserId:
    """Like normalize_user, but only an EVM address is accepted."""
    normalized = normalize_user(user, field)
    if not Web3.is_checksum_address(normalized):
        raise InvalidInputError(
            f"{field} must be a 0x-prefixed EVM address", field,
        )
    return normalized


def normalize_proof_id(proof_id: str) -> ProofId:
    """Proof ids are transaction hashes: 0x + 64 hex, stored lower-case."""
    if not isinstance(proof_id, str) or not PROOF_ID_PATTERN.match(proof_id.strip()):
        raise InvalidInputError(
            "proofId must be a 0x-prefixed 32-byte transaction hash", "proofId",
        )
    return ProofId(proof_id.strip().lower())


def same_address(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return a.lower() == b.lower()
