"""Promotional code list helpers."""

import re

_SEPARATORS = re.compile(r"[,\r\n]+")


def parse_promotional_codes(text: str) -> list[str]:
    """Split pasted or uploaded text into codes (comma or line separated)."""
    if not text or not text.strip():
        return []
    return [code.strip() for code in _SEPARATORS.split(text) if code.strip()]


def dedupe_codes(codes: list[str]) -> list[str]:
    """Trim, drop blanks and remove exact (case-sensitive) duplicates, keeping order."""
    seen: set[str] = set()
    unique = []
    for code in codes:
        code = code.strip()
        if code and code not in seen:
            seen.add(code)
            unique.append(code)
    return unique
