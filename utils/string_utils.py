from __future__ import annotations

import unicodedata

__all__: list[str] = ["StringUtils"]

ANONYMOUS_SENDER: str = "Anonymous"


class StringUtils:
    """Small string helpers shared by the cache, feed and translation layers."""

    @staticmethod
    def ensure_str(value: str | None) -> str:
        """Return ``value`` as a string, or an empty string for None.

        Whitespace is preserved; transcriptions are displayed verbatim.
        """
        if not isinstance(value, str):
            value = str(value) if value is not None else ""
        return value

    @staticmethod
    def normalize_text(text: str) -> str:
        """Apply Unicode NFC normalization so equal-looking texts share a cache key."""
        return unicodedata.normalize("NFC", text)

    @staticmethod
    def normalize_lang(code: str | None) -> str:
        """Lower-case and strip a language code. Codes are otherwise opaque."""
        return StringUtils.ensure_str(code).strip().lower()

    @staticmethod
    def display_sender(name: str | None) -> str:
        """Return the sender name, or ``"Anonymous"`` when it is blank."""
        name = StringUtils.ensure_str(name).strip()
        return name or ANONYMOUS_SENDER

    @staticmethod
    def truncate(text: str, limit: int = 50) -> str:
        """Shorten ``text`` for log output."""
        text = StringUtils.ensure_str(text)
        if limit <= 0 or len(text) <= limit:
            return text
        return text[:limit] + "..."
