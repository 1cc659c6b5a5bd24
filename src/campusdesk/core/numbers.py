from __future__ import annotations

import math
import re

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def parse_int(value: str | None) -> int | None:
    """Parse a plain base-10 integer; ``None`` when the text is not one."""
    text = str(value or "").strip()
    if not _INTEGER_RE.fullmatch(text):
        return None
    return int(text)


def parse_positive_int(value: str | None) -> int | None:
    parsed = parse_int(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed


def parse_finite_float(value: str | None) -> float | None:
    """Parse a ``.``-decimal number; rejects nan/inf spellings and digit separators."""
    text = str(value or "").strip()
    if not _DECIMAL_RE.fullmatch(text):
        return None
    parsed = float(text)
    return parsed if math.isfinite(parsed) else None
