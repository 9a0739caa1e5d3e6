"""
Services for AI Mandalart.

Services:
    - SessionStore: observable, persisted wizard session (one per session id)
    - RedisService: Redis access for persisted sessions
    - SuggestionService: LLM-backed archetypes, questions, pillars and actions
"""

from .redis_service import RedisService, get_redis_service
from .session_store import (
    InMemorySessionStorage,
    RedisSessionStorage,
    SessionStorage,
    SessionStore,
    close_session_storage,
    configure_session_storage,
    get_session_store,
    reset_session_stores,
)
from .suggestion_service import (
    ArchetypeDetection,
    SuggestionOutcome,
    SuggestionResult,
    SuggestionService,
    get_suggestion_service,
)

__all__ = [
    "RedisService",
    "get_redis_service",
    "InMemorySessionStorage",
    "RedisSessionStorage",
    "SessionStorage",
    "SessionStore",
    "close_session_storage",
    "configure_session_storage",
    "get_session_store",
    "reset_session_stores",
    "ArchetypeDetection",
    "SuggestionOutcome",
    "SuggestionResult",
    "SuggestionService",
    "get_suggestion_service",
]
