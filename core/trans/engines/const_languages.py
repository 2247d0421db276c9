"""Display names of the language codes used by the feed.

Codes are opaque to the core; only prompt-based engines need human-readable names.
"""

from __future__ import annotations

from typing import Final

__all__: list[str] = ["LANGUAGE_NAMES", "language_name"]

LANGUAGE_NAMES: Final[dict[str, str]] = {
    "en": "English",
    "ha": "Hausa",
    "sh": "Shona",
}


def language_name(code: str) -> str:
    """Return the display name for ``code``, or the code itself when unknown."""
    return LANGUAGE_NAMES.get(code, code)
