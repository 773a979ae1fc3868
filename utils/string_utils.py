from __future__ import annotations

import hashlib
import re
import unicodedata
from typing import Final

__all__: list[str] = ["StringUtils"]

# Characters that usually belong to format placeholders (%s, {0}, \n).
PLACEHOLDER_CHAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"[%{}\\]")
PREVIEW_LENGTH: Final[int] = 50


class StringUtils:
    """Static helpers for text handling shared by the cache and the unit planner."""

    @staticmethod
    def ensure_str(value: str | None) -> str:
        """Return ``value`` as a string; None becomes an empty string.

        Whitespace is preserved because leading/trailing blanks are significant in resource strings.
        """
        if not isinstance(value, str):
            value = str(value) if value is not None else ""
        return value

    @staticmethod
    def normalize_text(text: str) -> str:
        """Normalize text using Unicode NFC normalization.

        Args:
            text (str): Text to normalize.

        Returns:
            str: Normalized text.
        """
        return unicodedata.normalize("NFC", text)

    @staticmethod
    def generate_hash_key(normalized_source: str, source_lang: str, target_lang: str, service: str) -> str:
        """Generate a SHA-256 cache key for a translation request.

        Args:
            normalized_source (str): NFC-normalized source text.
            source_lang (str): Source language code.
            target_lang (str): Target language code.
            service (str): Translation service identifier.

        Returns:
            str: Hex digest identifying the request.
        """
        key_data: str = f"{service}|{source_lang}|{target_lang}|{normalized_source}"
        return hashlib.sha256(key_data.encode("utf-8")).hexdigest()

    @staticmethod
    def generate_translation_hash_key(source_text: str, source_lang: str, target_lang: str, service: str) -> str:
        """Normalize ``source_text`` and build its cache key."""
        return StringUtils.generate_hash_key(
            StringUtils.normalize_text(source_text), source_lang, target_lang, service
        )

    @staticmethod
    def count_placeholder_chars(text: str) -> int:
        """Count characters that look like parts of format placeholders (``%``, ``{``, ``}``, ``\\``)."""
        return len(PLACEHOLDER_CHAR_PATTERN.findall(text))

    @staticmethod
    def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
        """Shorten text for log output."""
        text = StringUtils.ensure_str(text)
        if len(text) <= length:
            return text
        return f"{text[:length]}..."
