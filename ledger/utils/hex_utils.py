"""
Hex and integer conversion helpers for JSON-RPC quantities.

Node responses encode block numbers, indexes and amounts as strings;
these helpers parse them strictly so malformed values surface as errors
instead of being silently coerced.
"""

import re

from ledger.config.constants import ETH_ADDRESS_HEX_LEN, UINT64_MAX

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")
_DEC_DIGITS = re.compile(r"[0-9]+")


def strip_hex_prefix(value: str) -> str:
    """Remove a leading 0x/0X if present."""
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def hex_to_uint64(value: str) -> int:
    """
    Parse a hex quantity as an unsigned 64-bit integer.

    The 0x prefix is optional.

    Raises:
        ValueError: If the value is empty, not hex, or exceeds uint64
    """
    if not isinstance(value, str):
        raise ValueError(f"expected hex string, got {type(value).__name__}")

    digits = strip_hex_prefix(value)
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"invalid hex quantity: {value!r}")

    number = int(digits, 16)
    if number > UINT64_MAX:
        raise ValueError(f"hex quantity out of uint64 range: {value!r}")
    return number


def uint64_to_hex(number: int) -> str:
    """
    Encode an unsigned 64-bit integer as a 0x-prefixed hex quantity.

    Examples:
        >>> uint64_to_hex(0)
        '0x0'
        >>> uint64_to_hex(11538392)
        '0xb00fd8'
    """
    if number < 0 or number > UINT64_MAX:
        raise ValueError(f"value out of uint64 range: {number}")
    return hex(number)


def parse_amount(value: str) -> int:
    """
    Parse a transfer amount as a non-negative arbitrary-precision integer.

    A 0x prefix selects base 16, anything else is read as base 10.

    Raises:
        ValueError: If the value is empty or has invalid digits
    """
    if not isinstance(value, str):
        raise ValueError(f"expected amount string, got {type(value).__name__}")

    if value[:2] in ("0x", "0X"):
        digits = value[2:]
        if not _HEX_DIGITS.fullmatch(digits):
            raise ValueError(f"invalid hex amount: {value!r}")
        return int(digits, 16)

    if not _DEC_DIGITS.fullmatch(value):
        raise ValueError(f"invalid decimal amount: {value!r}")
    return int(value, 10)


def parse_balance(value: str) -> int:
    """
    Parse a stored base-10 balance string.

    Balances may be negative (the zero address), so a leading minus is
    accepted.

    Raises:
        ValueError: If the string is not a base-10 integer
    """
    if not isinstance(value, str):
        raise ValueError(f"expected balance string, got {type(value).__name__}")

    digits = value[1:] if value.startswith("-") else value
    if not _DEC_DIGITS.fullmatch(digits):
        raise ValueError(f"invalid balance: {value!r}")
    return int(value, 10)


def topic_to_address(topic: str) -> str:
    """
    Convert a 32-byte indexed topic to a lowercase 20-byte address.

    The address is the last 40 hex digits; an unpadded 20-byte address is
    accepted as is.

    Raises:
        ValueError: If the topic is not hex or shorter than an address

    Examples:
        >>> topic_to_address(
        ...     "0x0000000000000000000000005041ed759dd4afc3a72b8192c143f72f4724081a"
        ... )
        '0x5041ed759dd4afc3a72b8192c143f72f4724081a'
    """
    if not isinstance(topic, str):
        raise ValueError(f"expected topic string, got {type(topic).__name__}")

    digits = strip_hex_prefix(topic)
    if len(digits) < ETH_ADDRESS_HEX_LEN or not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"invalid address topic: {topic!r}")
    return f"0x{digits[-ETH_ADDRESS_HEX_LEN:]}".lower()
