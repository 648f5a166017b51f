"""Natural key derivation for person records.

A person without a pass number gets one generated from their name and team:
the base64 encoding of ``first_name + last_name + team``.  Stored keys were
produced this way, so the derivation must not change even though two people
with the same name in the same team collide on the same key.
"""

import base64
from typing import Any


def derive_natural_key(row: dict[str, Any], source_fields: list[str]) -> str:
    """Derive a key by base64-encoding the concatenated ``source_fields``.

    Missing or null fields contribute an empty string.

    Example:
        >>> derive_natural_key(
        ...     {"first_name": "Ana", "last_name": "Silva", "team": "U12"},
        ...     ["first_name", "last_name", "team"],
        ... )
        'QW5hU2lsdmFVMTI='
    """
    raw = "".join(str(row.get(field) or "") for field in source_fields)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def with_natural_key(
    row: dict[str, Any],
    key_field: str,
    source_fields: list[str],
) -> dict[str, Any]:
    """Return ``row`` with ``key_field`` filled in when it is missing or blank.

    Rows that already carry a key are returned unchanged (same object).
    """
    current = row.get(key_field)
    if not source_fields or (isinstance(current, str) and current.strip()):
        return row
    if current is not None and not isinstance(current, str):
        return row
    return {**row, key_field: derive_natural_key(row, source_fields)}
