"""String normalization shared by header detection and product matching."""

from __future__ import annotations

import re
from typing import Any, Optional

_WHITESPACE_RE = re.compile(r"\s+")
_NON_TOKEN_RE = re.compile(r"[^A-Z0-9_]")
_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def normalize_string(value: Any) -> str:
    """Collapse a free-text value into an ``[A-Z0-9_]`` token.

    Trims, uppercases, turns whitespace runs into ``_`` and drops every other
    character, so ``"hea 200"`` and ``"HEA-200"`` become ``"HEA_200"`` and
    ``"HEA200"`` respectively. ``None`` and empty values give ``""``.
    """

    if value is None:
        return ""
    text = str(value).strip().upper()
    if not text:
        return ""
    text = _WHITESPACE_RE.sub("_", text)
    return _NON_TOKEN_RE.sub("", text)


def parse_leading_float(value: Optional[str]) -> Optional[float]:
    """Parse the numeric prefix of ``value`` (``"5 buc"`` -> ``5.0``).

    Returns ``None`` when no number leads the string. Spreadsheet exports
    routinely append units to quantities, so anything after the number is
    ignored rather than rejected.
    """

    if value is None:
        return None
    match = _LEADING_NUMBER_RE.match(str(value))
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None
