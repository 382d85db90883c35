"""Principal identifier parsing and normalization.

Reporters and validators are identified either by EVM addresses
(``0x``-prefixed hex, normalized to checksum form) or by bech32 addresses
such as ``oasis1...`` (normalized to lower case).
"""

from __future__ import annotations

import bech32
from web3 import Web3


def bech32_to_bytes(address: str) -> bytes:
    """Decode a bech32 address to raw bytes.

    :param address: Bech32-encoded address (e.g., "oasis1qr...").
    :returns: Raw address bytes.
    :raises ValueError: If address is invalid bech32.
    """
    hrp, data = bech32.bech32_decode(address)
    if data is None:
        raise ValueError(f"Invalid bech32 address: {address}")

    # Convert 5-bit groups to bytes
    address_bytes = bech32.convertbits(data, 5, 8, False)
    if address_bytes is None:
        raise ValueError(f"Failed to convert address to bytes: {address}")

    return bytes(address_bytes)


def normalize_principal(principal: str) -> str:
    """Normalize a principal identifier.

    :param principal: EVM or bech32 address.
    :returns: Checksummed EVM address or lower-case bech32 address.
    :raises ValueError: If the principal is neither.

    .. code-block:: python

        >>> normalize_principal("0x5fbdb2315678afecb367f032d93f642f64180aa3")
        '0x5FbDB2315678afecb367f032d93F642f64180aa3'
    """
    principal = principal.strip()
    if principal.lower().startswith("0x"):
        if not Web3.is_address(principal):
            raise ValueError(f"Invalid address: {principal}")
        return Web3.to_checksum_address(principal)

    bech32_to_bytes(principal)
    return principal.lower()


def parse_principals(value: str | None) -> list[str]:
    """Parse a comma-separated list of principals.

    Empty items are skipped and duplicates removed, keeping the first
    occurrence.

    :param value: Comma-separated principals, or None.
    :returns: Normalized principals.
    :raises ValueError: If any principal is invalid.
    """
    if not value:
        return []

    principals: list[str] = []
    for item in value.split(","):
        if not item.strip():
            continue
        principal = normalize_principal(item)
        if principal not in principals:
            principals.append(principal)
    return principals
