"""Input Enforcement — tests for coordinate, colour, identity and proof id checks.

Tests cover:
    - Coordinates must be ints inside [0, canvas_size)
    - Colours must be #RRGGBB
    - EVM addresses are checksummed; other identities pass through verbatim
    - require_address accepts only EVM addresses
    - Proof ids must be 0x + 64 hex and come back lower-case
"""

import pytest

from castcanvas.core.enforce_input import (
    check_color, check_coordinates, normalize_proof_id, normalize_user, require_address,
    same_address, validate_placement,
)
from castcanvas.core.errors import InvalidInputError

ADDRESS_LOWER = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
ADDRESS_CHECKSUM = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


# ─── coordinates ─────────────────────────────────────────────────

@pytest.mark.parametrize("x,y", [(0, 0), (999, 999), (500, 0)])
def test_coordinates_in_bounds_pass(x, y):
    check_coordinates(x, y, 1000)


@pytest.mark.parametrize("x,y,field", [
    (-1, 0, "x"), (1000, 0, "x"), (0, -1, "y"), (0, 1000, "y"),
])
def test_coordinates_out_of_bounds_rejected(x, y, field):
    with pytest.raises(InvalidInputError) as exc:
        check_coordinates(x, y, 1000)
    assert exc.value.field == field
    assert exc.value.http_status == 400


@pytest.mark.parametrize("value", [1.5, "3", None, True])
def test_non_integer_coordinates_rejected(value):
    with pytest.raises(InvalidInputError):
        check_coordinates(value, 0, 1000)


# ─── colour ──────────────────────────────────────────────────────

@pytest.mark.parametrize("color", ["#FF0000", "#00ff00", "#AbCdEf"])
def test_valid_colors_pass(color):
    check_color(color)


@pytest.mark.parametrize("color", ["red", "#FFF", "FF0000", "#GG0000", "#FF00000", ""])
def test_invalid_colors_rejected(color):
    with pytest.raises(InvalidInputError) as exc:
        check_color(color)
    assert exc.value.field == "color"


def test_validate_placement_checks_coordinates_first():
    with pytest.raises(InvalidInputError) as exc:
        validate_placement(-1, 0, "bad", 1000)
    assert exc.value.field == "x"


# ─── identities ──────────────────────────────────────────────────

def test_normalize_user_checksums_addresses():
    assert normalize_user(ADDRESS_LOWER) == ADDRESS_CHECKSUM
    assert normalize_user(ADDRESS_LOWER.upper().replace("0X", "0x")) == ADDRESS_CHECKSUM


def test_normalize_user_keeps_opaque_ids_verbatim():
    assert normalize_user("alice") == "alice"
    assert normalize_user("  Bob  ") == "Bob"


@pytest.mark.parametrize("user", ["", "   ", None])
def test_normalize_user_rejects_empty(user):
    with pytest.raises(InvalidInputError) as exc:
        normalize_user(user, field="address")
    assert exc.value.field == "address"


def test_require_address_checksums():
    assert require_address(f" {ADDRESS_LOWER} ") == ADDRESS_CHECKSUM


@pytest.mark.parametrize("user", ["12345", "alice", "0x1234", ADDRESS_LOWER + "00"])
def test_require_address_rejects_other_identities(user):
    with pytest.raises(InvalidInputError) as exc:
        require_address(user)
    assert exc.value.field == "user"


def test_same_address_is_case_insensitive():
    assert same_address(ADDRESS_LOWER, ADDRESS_CHECKSUM)
    assert not same_address(ADDRESS_LOWER, None)
    assert not same_address(None, None)


# ─── proof ids ───────────────────────────────────────────────────

def test_normalize_proof_id_lowercases():
    proof = "0x" + "AB" * 32
    assert normalize_proof_id(proof) == "0x" + "ab" * 32


@pytest.mark.parametrize("proof", ["", "0x1234", "ab" * 32, "0x" + "zz" * 32, None])
def test_normalize_proof_id_rejects_malformed(proof):
    with pytest.raises(InvalidInputError) as exc:
        normalize_proof_id(proof)
    assert exc.value.field == "proofId"
