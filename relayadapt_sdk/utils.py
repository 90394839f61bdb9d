"""
Byte and address helpers shared by the models and the ABI codec.
"""
from typing import Any, Union

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def to_fixed_bytes(value: Union[bytes, str, int], length: int = 32) -> bytes:
    """
    Normalize a bytes-like value to exactly ``length`` bytes.

    Ints and hex strings are treated as big-endian integers and left-padded,
    so ``"0xAA"`` becomes ``bytes32(uint256(0xAA))``. Raw bytes must already
    have the right length.

    Args:
        value: bytes, ``0x`` hex string or non-negative int
        length: Target length in bytes

    Returns:
        The value as ``length`` bytes

    Raises:
        ValueError: If the value does not fit in ``length`` bytes
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid byte value")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Negative value cannot be encoded as bytes{length}")
        try:
            return value.to_bytes(length, "big")
        except OverflowError:
            raise ValueError(f"Value does not fit in bytes{length}")
    if isinstance(value, str):
        raw = Web3.to_bytes(hexstr=value)
        if len(raw) > length:
            raise ValueError(f"Hex value longer than {length} bytes: {value}")
        return raw.rjust(length, b"\x00")
    if isinstance(value, (bytes, bytearray)):
        if len(value) != length:
            raise ValueError(f"Expected {length} bytes, got {len(value)}")
        return bytes(value)
    raise ValueError(f"Cannot convert {type(value).__name__} to bytes{length}")


def to_dynamic_bytes(value: Any) -> bytes:
    """Accept raw bytes or a ``0x`` hex string for a dynamic ``bytes`` field."""
    if isinstance(value, str):
        return Web3.to_bytes(hexstr=value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise ValueError(f"Cannot convert {type(value).__name__} to bytes")


def to_address(value: Any) -> str:
    """Return the checksum form of an address given as hex string or 20 bytes."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueError(f"Address must be 20 bytes, got {len(value)}")
        value = "0x" + bytes(value).hex()
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return Web3.to_checksum_address(value)


def hex_str(value: bytes) -> str:
    """Format bytes as a 0x-prefixed hex string."""
    return "0x" + bytes(value).hex()
