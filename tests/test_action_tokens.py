import pytest

from edara.core.security import string_hash, to_base36, generate_action_token, verify_action_token

SECRET = "s" * 40


def _reference_hash(data: str) -> int:
    # forma polinómica: sum(c * 31^(n-1-i)) mod 2^32, interpretado con signo
    n = len(data)
    h = sum(ord(c) * 31 ** (n - 1 - i) for i, c in enumerate(data)) % (1 << 32)
    return h - (1 << 32) if h >= (1 << 31) else h


@pytest.mark.parametrize("data,expected", [("", 0), ("a", 97), ("ab", 97 * 31 + 98)])
def test_string_hash_small_values(data, expected):
    assert string_hash(data) == expected


@pytest.mark.parametrize("data", [
    "5f2b1c0e9a7d4e3f8b6a1c2d3e4f5a6b-approve-" + "k" * 32,
    "5f2b1c0e9a7d4e3f8b6a1c2d3e4f5a6b-reject-" + "k" * 32,
    "x" * 500,
])
def test_string_hash_wraps_like_signed_32_bit(data):
    h = string_hash(data)
    assert -(1 << 31) <= h < (1 << 31)
    assert h == _reference_hash(data)


@pytest.mark.parametrize("n,expected", [(0, "0"), (35, "z"), (36, "10"), (97, "2p")])
def test_to_base36(n, expected):
    assert to_base36(n) == expected


def test_token_round_trip_and_binding():
    token = generate_action_token("ticket-1", "approve", SECRET)
    assert verify_action_token("ticket-1", "approve", token, SECRET)
    assert not verify_action_token("ticket-1", "reject", token, SECRET)
    assert not verify_action_token("ticket-2", "approve", token, SECRET)
    assert not verify_action_token("ticket-1", "approve", token + "0", SECRET)


def test_only_first_32_secret_chars_are_used():
    assert generate_action_token("t", "approve", "a" * 32) == generate_action_token("t", "approve", "a" * 32 + "tail")


def test_token_is_lowercase_base36():
    token = generate_action_token("abc", "reject", SECRET)
    assert token and set(token) <= set("0123456789abcdefghijklmnopqrstuvwxyz")
