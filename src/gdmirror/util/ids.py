from __future__ import annotations

import re

# Drive aliases accepted wherever a folder id is expected.
ID_ALIASES: frozenset[str] = frozenset({"root", "appDataFolder", "photos"})

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{10,100}$")


def is_valid_id(value: object) -> bool:
    """Return True if value looks like a Drive file/folder id (or a known alias)."""
    if not value:
        return False
    s = str(value)
    if s in ID_ALIASES:
        return True
    return bool(_ID_PATTERN.match(s))
