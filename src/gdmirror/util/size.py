from __future__ import annotations

import re

_UNITS: dict[str, int] = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
    "t": 1024**4,
    "tb": 1024**4,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")


def parse_size(value: int | float | str | None) -> int | None:
    """
    Parse a human size ("10MB", "1.5g", "2048") into bytes.

    Units are binary (1KB == 1024 bytes). None and "" return None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("size must be a number or a size string")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError("size must not be negative")
        return int(value)

    match = _SIZE_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    factor = _UNITS.get(unit.lower())
    if factor is None:
        raise ValueError(f"Unknown size unit: {unit!r}")
    return int(float(number) * factor)


def format_size(num: int) -> str:
    """Format bytes for log lines, e.g. 1536 -> '1.50 KB'."""
    if num < 1024:
        return f"{num} B"
    size = float(num)
    unit = "B"
    for unit in ("KB", "MB", "GB", "TB"):
        size /= 1024
        if size < 1024:
            break
    return f"{size:.2f} {unit}"
