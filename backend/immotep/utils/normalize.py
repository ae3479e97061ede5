"""Utility helpers for normalising raw DVF fields."""
from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from typing import Optional

_SPACE_RE = re.compile(r"\s+")


def none_if_blank(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s if s != "" else None


def strip_accents(value: str) -> str:
    """Drop combining marks: ``Élancourt`` -> ``Elancourt``."""
    decomposed = unicodedata.normalize("NFD", value)
    kept = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", kept)


def upper_name(value: Optional[str]) -> Optional[str]:
    """Upper-cased, accent-free, single-spaced city name (lookup key)."""
    s = none_if_blank(value)
    if s is None:
        return None
    return _SPACE_RE.sub(" ", strip_accents(s).upper())


def hyphen_name(value: str) -> str:
    """Alternate key: spaces replaced by hyphens."""
    return value.replace(" ", "-")


def normalize_department_code(value: Optional[str]) -> Optional[str]:
    """
    Two character department code: ``1`` -> ``01``, ``2A`` stays ``2A``.
    Overseas codes (``971``...) are returned as-is, callers reject them.
    """
    s = none_if_blank(value)
    if s is None:
        return None
    if len(s) == 1:
        return "0" + s
    return s


def build_city_code(department_code: str, local_code: Optional[str]) -> str:
    """INSEE city code = department code + local code padded to 3 digits."""
    local = (none_if_blank(local_code) or "").zfill(3)
    return f"{department_code}{local}"


def parse_int(value: object) -> Optional[int]:
    s = none_if_blank(value)
    if s is None:
        return None
    try:
        return int(s)
    except ValueError:
        return None


def parse_decimal_comma(value: object) -> Optional[float]:
    """French decimal: ``185000,50`` -> ``185000.5``."""
    s = none_if_blank(value)
    if s is None:
        return None
    try:
        return float(s.replace(",", ".", 1))
    except ValueError:
        return None


def parse_float(value: object) -> Optional[float]:
    s = none_if_blank(value)
    if s is None:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def ddmmyyyy_to_date(value: object) -> Optional[date]:
    """Convert a DVF ``dd/mm/YYYY`` string into :class:`datetime.date`."""
    s = none_if_blank(value)
    if s is None:
        return None
    try:
        return datetime.strptime(s, "%d/%m/%Y").date()
    except ValueError:
        return None
