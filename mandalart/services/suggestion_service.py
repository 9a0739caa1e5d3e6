"""
Suggestion Service: the LLM behind archetypes, questions, pillars and actions.

Talks to an OpenAI-compatible chat-completions endpoint over httpx and always
asks for a JSON object. Calls are retried a bounded number of times with a
linear backoff; once retries are exhausted an ExternalServiceError is raised.

List operations never raise. They return a SuggestionResult tagged
complete / partial / failed so callers can decide what to apply; a failed
result must leave the session untouched. Single-value operations (archetype,
summary, blessing) raise ExternalServiceError instead.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable, Generic, Iterable, Sequence, TypeVar

import httpx

from mandalart.config.settings import Settings, get_settings
from mandalart.lib import prompts
from mandalart.lib.exceptions import ExternalServiceError
from mandalart.modules.session_state import Archetype, InterviewAnswer, Pillar, QuickContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

PILLAR_SUGGESTION_COUNT = 12
ACTION_SUGGESTION_COUNT = 12
INTERVIEW_QUESTION_COUNT = 3
DISCOVERY_GOAL_COUNT = 3


# =============================================================================
# Result Types
# =============================================================================

class SuggestionOutcome(StrEnum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class SuggestionResult(Generic[T]):
    """
    Outcome of a list suggestion.

    Attributes:
        outcome: complete (all requested), partial (some) or failed (none)
        items: Usable suggestions, at most `requested`
        requested: How many were asked for
        error: Why the call failed, when it did
        summary: Free-text summary returned alongside the items, if any
    """

    outcome: SuggestionOutcome
    items: tuple[T, ...] = ()
    requested: int = 0
    error: str | None = None
    summary: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome != SuggestionOutcome.FAILED

    @classmethod
    def from_items(cls, items: Sequence[T], requested: int, summary: str = "") -> SuggestionResult[T]:
        kept = tuple(items[:requested]) if requested else tuple(items)
        if requested and not kept:
            return cls(SuggestionOutcome.FAILED, (), requested, "No usable suggestions returned", summary)
        outcome = SuggestionOutcome.PARTIAL if len(kept) < requested else SuggestionOutcome.COMPLETE
        return cls(outcome, kept, requested, None, summary)

    @classmethod
    def failed(cls, requested: int, error: str) -> SuggestionResult[T]:
        return cls(SuggestionOutcome.FAILED, (), requested, error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "requested": self.requested,
            "received": len(self.items),
            "error": self.error,
        }


@dataclass(frozen=True)
class ArchetypeDetection:
    archetype: Archetype
    confidence: float
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "archetype": self.archetype.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


# =============================================================================
# Parsing Helpers
# =============================================================================

def _clean_strings(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [item.strip() for item in raw if isinstance(item, str) and item.strip()]


def normalize_pillars(raw: Any, taken_ids: Iterable[str] = ()) -> list[Pillar]:
    """
    Turn model output into Pillars with unique ids.

    Items without a title are dropped. Blank ids, and ids already used by
    another item or listed in `taken_ids`, are replaced by the next free
    "pillar_{n}".
    """
    if not isinstance(raw, list):
        return []

    used = set(taken_ids)
    pillars: list[Pillar] = []
    counter = 0

    for item in raw:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        pillar_id = str(item.get("id") or "").strip()
        if not pillar_id or pillar_id in used:
            counter += 1
            while f"pillar_{counter}" in used:
                counter += 1
            pillar_id = f"pillar_{counter}"
        used.add(pillar_id)
        pillars.append(
            Pillar(id=pillar_id, title=title, description=str(item.get("description") or "").strip())
        )
    return pillars


# =============================================================================
# Suggestion Service
# =============================================================================

class SuggestionService:
    """
    Async client for every LLM-backed suggestion in the wizard.

    Args:
        settings: Model, endpoint and retry configuration
        client: Preconfigured httpx client (tests pass one with a MockTransport)
        sleep: Coroutine used between attempts
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.llm_base_url,
            timeout=self.settings.llm_timeout,
        )
        self._sleep = sleep

    async def aclose(self) -> None:
        await self._client.aclose()

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        """
        Send one prompt and return the decoded JSON object.

        Raises:
            ExternalServiceError: No API key, or every attempt failed
        """
        if not self.settings.openai_api_key:
            raise ExternalServiceError("OPENAI_API_KEY is not configured")

        payload = {
            "model": self.settings.llm_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.llm_temperature,
            "max_tokens": self.settings.llm_max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.settings.openai_api_key}"}
        max_attempts = self.settings.llm_max_attempts
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._client.post("/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
                content = response.json()["choices"][0]["message"]["content"]
                if not content:
                    raise ValueError("Empty completion")
                data = json.loads(content)
                if not isinstance(data, dict):
                    raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
                return data
            except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
                last_error = exc
                logger.warning(
                    "LLM call failed (attempt %d/%d): %s", attempt, max_attempts, exc,
                )
                if attempt < max_attempts:
                    await self._sleep(self.settings.llm_backoff_seconds * attempt)

        raise ExternalServiceError(
            f"LLM call failed after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
        )

    async def _suggest_list(
        self,
        prompt: str,
        requested: int,
        parse: Callable[[dict[str, Any]], list[T]],
        summary_key: str | None = None,
    ) -> SuggestionResult[T]:
        try:
            data = await self.complete_json(prompt)
        except ExternalServiceError as exc:
            return SuggestionResult.failed(requested, str(exc))

        summary = str(data.get(summary_key) or "").strip() if summary_key else ""
        result = SuggestionResult.from_items(parse(data), requested, summary)
        if result.outcome != SuggestionOutcome.COMPLETE:
            logger.info(
                "Suggestion %s: %d of %d items", result.outcome, len(result.items), requested,
            )
        return result

    # -------------------------------------------------------------------------
    # Goal & persona
    # -------------------------------------------------------------------------

    async def detect_archetype(
        self,
        goal: str,
        quick_context: QuickContext | None = None,
        lang: str = "en",
    ) -> ArchetypeDetection:
        """
        Classify a goal into one of the four archetypes.

        Raises:
            ExternalServiceError: The call failed or returned an unknown archetype
        """
        data = await self.complete_json(prompts.archetype_detection(goal, quick_context, lang))
        try:
            archetype = Archetype(str(data.get("archetype", "")).strip().upper())
        except ValueError as exc:
            raise ExternalServiceError(f"Unknown archetype in response: {data.get('archetype')!r}") from exc

        try:
            confidence = min(max(float(data.get("confidence", 0.0)), 0.0), 1.0)
        except (TypeError, ValueError):
            confidence = 0.0
        return ArchetypeDetection(archetype, confidence, str(data.get("reasoning") or "").strip())

    async def generate_interview_questions(
        self,
        archetype: Archetype,
        goal: str,
        quick_context: QuickContext | None = None,
        lang: str = "en",
    ) -> tuple[str, ...]:
        """Three tailored questions; the static bank for the archetype on any failure."""
        fallback = prompts.interview_questions(archetype, lang)
        prompt = prompts.interview_question_generation(
            archetype, goal, quick_context, lang, count=INTERVIEW_QUESTION_COUNT,
        )
        try:
            data = await self.complete_json(prompt)
        except ExternalServiceError as exc:
            logger.info("Using static interview questions: %s", exc)
            return fallback

        questions = _clean_strings(data.get("questions"))
        if len(questions) < INTERVIEW_QUESTION_COUNT:
            return fallback
        return tuple(questions[:INTERVIEW_QUESTION_COUNT])

    async def summarize_interview(
        self,
        archetype: Archetype,
        goal: str,
        answers: Sequence[InterviewAnswer],
        lang: str = "en",
    ) -> str:
        """
        Derive the vibe summary from interview answers.

        Raises:
            ExternalServiceError: The call failed or the summary is empty
        """
        data = await self.complete_json(prompts.interview_summary(archetype, goal, answers, lang))
        summary = str(data.get("vibeSummary") or "").strip()
        if not summary:
            raise ExternalServiceError("Empty vibe summary in response")
        return summary

    async def suggest_discovery_goals(
        self,
        answers: Sequence[InterviewAnswer],
        lang: str = "en",
    ) -> SuggestionResult[str]:
        return await self._suggest_list(
            prompts.discovery_goal_suggestion(answers, lang, count=DISCOVERY_GOAL_COUNT),
            DISCOVERY_GOAL_COUNT,
            lambda data: _clean_strings(data.get("suggestedGoals")),
            summary_key="summary",
        )

    # -------------------------------------------------------------------------
    # Pillars
    # -------------------------------------------------------------------------

    async def suggest_pillars(
        self,
        archetype: Archetype,
        goal: str,
        vibe_summary: str,
        lang: str = "en",
        count: int = PILLAR_SUGGESTION_COUNT,
    ) -> SuggestionResult[Pillar]:
        return await self._suggest_list(
            prompts.pillar_suggestion(archetype, goal, vibe_summary, lang, count=count),
            count,
            lambda data: normalize_pillars(data.get("pillars")),
        )

    async def regenerate_pillars(
        self,
        archetype: Archetype,
        goal: str,
        vibe_summary: str,
        selected: Sequence[Pillar],
        rejected: Sequence[Pillar],
        count: int,
        lang: str = "en",
    ) -> SuggestionResult[Pillar]:
        """New pillars for every unselected slot; ids never collide with the selection."""
        if count <= 0:
            return SuggestionResult.from_items([], 0)
        taken = [p.id for p in selected]
        return await self._suggest_list(
            prompts.pillar_regeneration(archetype, goal, vibe_summary, selected, rejected, count, lang),
            count,
            lambda data: normalize_pillars(data.get("pillars"), taken),
        )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def suggest_actions(
        self,
        goal: str,
        vibe_summary: str,
        pillar: Pillar,
        lang: str = "en",
        count: int = ACTION_SUGGESTION_COUNT,
    ) -> SuggestionResult[str]:
        return await self._suggest_list(
            prompts.action_suggestion(goal, vibe_summary, pillar, lang, count=count),
            count,
            lambda data: _clean_strings(data.get("actions")),
        )

    async def regenerate_actions(
        self,
        goal: str,
        vibe_summary: str,
        pillar: Pillar,
        selected: Sequence[str],
        rejected: Sequence[str],
        count: int,
        lang: str = "en",
    ) -> SuggestionResult[str]:
        if count <= 0:
            return SuggestionResult.from_items([], 0)
        return await self._suggest_list(
            prompts.action_regeneration(goal, vibe_summary, pillar, selected, rejected, count, lang),
            count,
            lambda data: _clean_strings(data.get("actions")),
        )

    # -------------------------------------------------------------------------
    # Result
    # -------------------------------------------------------------------------

    async def generate_blessing(self, goal: str, pillar_titles: Sequence[str], lang: str = "en") -> str:
        """
        One witty line of encouragement for the finished mandalart.

        Raises:
            ExternalServiceError: The call failed or the blessing is empty
        """
        data = await self.complete_json(prompts.blessing(goal, pillar_titles, lang))
        text = str(data.get("blessing") or "").strip()
        if not text:
            raise ExternalServiceError("Empty blessing in response")
        return text


# Singleton instance
_suggestion_service: SuggestionService | None = None


def get_suggestion_service() -> SuggestionService:
    """Get the process-wide Suggestion Service."""
    global _suggestion_service
    if _suggestion_service is None:
        _suggestion_service = SuggestionService()
    return _suggestion_service


async def close_suggestion_service() -> None:
    global _suggestion_service
    if _suggestion_service is not None:
        await _suggestion_service.aclose()
        _suggestion_service = None


__all__ = [
    "PILLAR_SUGGESTION_COUNT",
    "ACTION_SUGGESTION_COUNT",
    "INTERVIEW_QUESTION_COUNT",
    "DISCOVERY_GOAL_COUNT",
    "SuggestionOutcome",
    "SuggestionResult",
    "ArchetypeDetection",
    "normalize_pillars",
    "SuggestionService",
    "get_suggestion_service",
    "close_suggestion_service",
]
