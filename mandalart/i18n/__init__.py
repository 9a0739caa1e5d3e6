"""
i18n foundation for AI Mandalart.

Supported languages: English (en) and Korean (ko). The wizard's user-facing
labels are looked up through `mandalart.i18n.strings`; prompts sent to the
Suggestion Service carry the language name so suggestions come back in the
user's language.
"""

from __future__ import annotations

from typing import Literal

LANGUAGES: list[str] = ["en", "ko"]

LanguageCode = Literal["en", "ko"]

DEFAULT_LANGUAGE: LanguageCode = "en"

LANGUAGE_DISPLAY_NAMES: dict[LanguageCode, str] = {
    "en": "English",
    "ko": "Korean",
}


def is_valid_language(lang: str) -> bool:
    """Check whether a language code is supported."""
    return lang in LANGUAGES


def normalize_language(lang: str | None) -> LanguageCode:
    """
    Reduce a locale such as "ko-KR" to a supported language code.

    Unsupported or empty locales fall back to English.
    """
    if not lang:
        return DEFAULT_LANGUAGE
    code = lang.split("-")[0].lower()
    if is_valid_language(code):
        return code  # type: ignore[return-value]
    return DEFAULT_LANGUAGE


def get_language_display_name(lang: str) -> str:
    """Human-readable language name, used inside prompts."""
    return LANGUAGE_DISPLAY_NAMES.get(normalize_language(lang), "English")
