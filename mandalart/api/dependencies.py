"""
FastAPI dependencies: session store lookup, Suggestion Service and locale.
"""

from fastapi import Path, Query, Request

from mandalart.i18n import LanguageCode, normalize_language
from mandalart.lib.logging import bind_session
from mandalart.services.session_store import SessionStore, get_session_store
from mandalart.services.suggestion_service import SuggestionService, get_suggestion_service

SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]{1,128}$"


def get_store(
    session_id: str = Path(..., pattern=SESSION_ID_PATTERN),
) -> SessionStore:
    """
    Shared store for the session in the URL.

    Also binds the session id to the logging context of the request.
    """
    bind_session(session_id)
    return get_session_store(session_id)


def get_suggestions() -> SuggestionService:
    """Suggestion Service used by the routes; overridden in tests."""
    return get_suggestion_service()


def get_language(
    request: Request,
    lang: str | None = Query(default=None, max_length=10),
) -> LanguageCode:
    """
    Resolve the response language.

    An explicit ?lang= wins over the first Accept-Language entry; anything
    unsupported falls back to English.
    """
    if lang:
        return normalize_language(lang)
    header = request.headers.get("accept-language", "")
    first = header.split(",")[0].split(";")[0].strip()
    return normalize_language(first)


__all__ = ["SESSION_ID_PATTERN", "get_store", "get_suggestions", "get_language"]
