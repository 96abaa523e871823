"""
ABI calldata encoding for token transfers.
"""

from __future__ import annotations

from typing import Dict, Optional

from eth_utils import keccak

MAX_UINT256 = 2**256 - 1

TRANSFER_SIGNATURE = "transfer(address,uint256)"

# Well-known USDC (6 decimals) addresses by chain ID
USDC_ADDRESSES: Dict[int, str] = {
    1: "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",      # Ethereum
    10: "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",     # Optimism
    137: "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",    # Polygon
    8453: "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",   # Base
    42161: "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",  # Arbitrum
}


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError("Value must be non-negative")
    if value > MAX_UINT256:
        raise ValueError("Value does not fit in uint256")
    return hex(value)[2:].rjust(64, "0")


def _encode_address(address: str) -> str:
    addr = _strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.rjust(64, "0")


def selector_from_signature(signature: str) -> str:
    selector = keccak(text=signature)[:4].hex()
    return f"0x{selector}"


def build_transfer_call_data(recipient: str, amount: int) -> str:
    """
    Build calldata for ERC-20 transfer(address,uint256).
    """
    selector = selector_from_signature(TRANSFER_SIGNATURE)
    return selector + _encode_address(recipient) + _encode_uint(amount)


def asset_address_for_chain(chain_id: int, override: Optional[str] = None) -> Optional[str]:
    """Transfer asset contract on ``chain_id``; ``override`` wins when set."""
    if override:
        return override
    return USDC_ADDRESSES.get(chain_id)
