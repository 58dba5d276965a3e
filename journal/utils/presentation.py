"""
Helpers that turn stored articles into the shape the public site renders
"""

from datetime import datetime
from typing import Optional

from journal.config import settings

MONTH_NAMES = {
    "en": ["January", "February", "March", "April", "May", "June", "July",
           "August", "September", "October", "November", "December"],
    "fr": ["janvier", "février", "mars", "avril", "mai", "juin", "juillet",
           "août", "septembre", "octobre", "novembre", "décembre"],
    "ar": ["يناير", "فبراير", "مارس", "أبريل", "مايو", "يونيو", "يوليو",
           "أغسطس", "سبتمبر", "أكتوبر", "نوفمبر", "ديسمبر"],
}

_ABSOLUTE_PREFIXES = ("http://", "https://", "//", "data:", "gs://", "blob:")


def absolute_url(path: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """Prefix a relative media path with the public base URL."""
    if not path or path.startswith(_ABSOLUTE_PREFIXES):
        return path
    base = (base_url if base_url is not None else settings.PUBLIC_BASE_URL).rstrip("/")
    return f"{base}/{path.lstrip('/')}"


def format_display_date(value: Optional[datetime], lang: str = "en") -> Optional[str]:
    """
    Localized long date.

    en: "October 19, 2026", fr: "19 octobre 2026", ar: "19 أكتوبر 2026".
    Unknown languages fall back to English.
    """
    if value is None:
        return None
    months = MONTH_NAMES.get(lang, MONTH_NAMES["en"])
    month = months[value.month - 1]
    if lang in ("fr", "ar"):
        return f"{value.day} {month} {value.year}"
    return f"{month} {value.day}, {value.year}"
