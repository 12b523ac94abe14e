"""Withdrawal records and token address helpers."""

from dataclasses import dataclass
from typing import Union

from eth_utils import encode_hex, to_canonical_address

# The chain's base asset is not a contract; it is addressed by the zero address.
NATIVE_TOKEN_ADDRESS = bytes(20)
NATIVE_TOKEN_DECIMALS = 18

TokenLike = Union[str, bytes, bytearray, memoryview]


def to_token_address(value: TokenLike) -> bytes:
    """Normalize a hex string or raw bytes into a canonical 20-byte token address."""
    if isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    if not isinstance(value, (str, bytes)):
        raise ValueError(f"Unsupported token address type: {type(value).__name__}")
    return to_canonical_address(value)


def token_label(token: bytes) -> str:
    """Text form of a token address used as the metric label, e.g. ``0x00...00``."""
    return encode_hex(token)


@dataclass(frozen=True)
class WithdrawalRecord:
    """A stored withdrawal: storage id, token address and raw integer amount."""

    storage_id: int
    token: bytes
    amount: int
