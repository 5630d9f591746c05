"""
Input validation and size parsing functions.
"""

import re

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")

# binary suffixes (K, KiB, ...) and decimal ones (KB, MB, ...)
SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": 1 << 10,
    "k": 1 << 10,
    "KiB": 1 << 10,
    "M": 1 << 20,
    "m": 1 << 20,
    "MiB": 1 << 20,
    "G": 1 << 30,
    "g": 1 << 30,
    "GiB": 1 << 30,
    "T": 1 << 40,
    "t": 1 << 40,
    "TiB": 1 << 40,
    "P": 1 << 50,
    "p": 1 << 50,
    "PiB": 1 << 50,
    "kB": 10**3,
    "KB": 10**3,
    "MB": 10**6,
    "GB": 10**9,
    "TB": 10**12,
    "PB": 10**15,
}


def validate_name(name: str) -> None:
    """
    Validate a volume name.

    The name is used both as the LINSTOR resource definition name and as a
    directory below the mount root.

    Args:
        name: Name to validate

    Raises:
        ValueError: If name is invalid
    """
    if not name:
        raise ValueError("Name cannot be empty")

    if len(name) > 48:
        raise ValueError("Name must be between 1 and 48 characters")

    if not re.match(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$", name):
        raise ValueError("Name must start with alphanumeric and contain only alphanumeric, underscores, or hyphens")


def parse_size(value: str) -> int:
    """
    Parse a size string such as "100MB", "4M" or "1.5GiB" into bytes.

    Args:
        value: Size string; a bare number is taken as bytes

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a number followed by a known unit
    """
    match = _SIZE_RE.match(value or "")
    if not match:
        raise ValueError(f"invalid size '{value}'")

    number, suffix = match.groups()
    if suffix not in SIZE_UNITS:
        raise ValueError(f"unknown size unit '{suffix}'")

    if "." in number:
        try:
            return int(float(number) * SIZE_UNITS[suffix])
        except OverflowError:
            raise ValueError(f"size '{value}' is too large")
    return int(number) * SIZE_UNITS[suffix]
