"""Field element encoding and decoding utilities."""

from zasp.exceptions import ParseError

# BN254 scalar field
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

HEX_DIGITS = 64

ZERO_HEX = "0x0"


def _strip_prefix(hex_str: str) -> str:
    if not isinstance(hex_str, str):
        raise ParseError(f"Expected hex string, got {type(hex_str).__name__}")
    digits = hex_str.strip()
    if digits[:2] in ("0x", "0X"):
        digits = digits[2:]
    if not digits:
        raise ParseError(f"Empty hex string: {hex_str!r}")
    return digits


def parse_hex(hex_str: str) -> int:
    """
    Parse a hex string into an unbounded unsigned integer.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        int: Parsed value, not reduced

    Raises:
        ParseError: If the string contains non-hex characters
    """
    digits = _strip_prefix(hex_str)
    try:
        return int(digits, 16)
    except ValueError as e:
        raise ParseError(f"Invalid hex string: {hex_str!r}") from e


def from_hex(hex_str: str) -> int:
    """
    Convert a hex string to a field element.

    Values at or above the modulus are reduced, not rejected, so
    round-trips only hold for in-range input.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        int: Field element in [0, FIELD_MODULUS)

    Raises:
        ParseError: If the string contains non-hex characters
    """
    return parse_hex(hex_str) % FIELD_MODULUS


def to_canonical_hex(value: int) -> str:
    """
    Convert a field element to its canonical string.

    Args:
        value: Field element

    Returns:
        str: '0x' followed by exactly 64 lowercase hex digits
    """
    return "0x" + format(value % FIELD_MODULUS, "0%dx" % HEX_DIGITS)


def normalize_hex(hex_str: str) -> str:
    """
    Canonical 64-digit form of a 256-bit value, without field reduction.

    Note identifiers are keyed by the raw value reconstructed from the
    event words, which may exceed the field modulus.
    """
    value = parse_hex(hex_str)
    if value >> 256:
        raise ParseError(f"Value wider than 256 bits: {hex_str!r}")
    return "0x" + format(value, "0%dx" % HEX_DIGITS)


def int_to_hex(value: int) -> str:
    """Minimal '0x' rendering, used for stored amounts."""
    return "0x%x" % value
