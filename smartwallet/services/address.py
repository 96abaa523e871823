"""Helpers for validating and normalizing EVM wallet addresses."""

from __future__ import annotations

import re
from functools import lru_cache

from eth_utils import is_checksum_address, to_checksum_address

_EVM_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")


@lru_cache(maxsize=256)
def is_valid_evm_address(address: str) -> bool:
    """
    Return True for a well-formed ``0x`` + 40 hex address.

    All-lowercase and all-uppercase hex are accepted as-is; mixed case must be
    a valid EIP-55 checksum.
    """
    if not address or not isinstance(address, str):
        return False
    if not _EVM_ADDRESS_RE.fullmatch(address):
        return False
    body = address[2:]
    if body == body.lower() or body == body.upper():
        return True
    return is_checksum_address(address)


def normalize_address(address: str) -> str:
    """Checksum a valid address. Raises ValueError for malformed input."""
    if not is_valid_evm_address(address):
        raise ValueError(f"Invalid EVM address: {address!r}")
    return to_checksum_address(address)


def address_key(address: str) -> str:
    """Case-insensitive key for caching per-address state."""
    return address.lower()


__all__ = [
    "is_valid_evm_address",
    "normalize_address",
    "address_key",
]
