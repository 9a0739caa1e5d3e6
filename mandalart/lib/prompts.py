"""
Prompt templates for the Suggestion Service.

Every builder returns a single user message asking for a JSON object. The
reply language follows the session locale; the rules and output shape are
always written in English so the parser sees stable keys.

Static question banks double as fallbacks when generation fails.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from mandalart.i18n import LanguageCode, get_language_display_name
from mandalart.modules.session_state import Archetype, InterviewAnswer, Pillar, QuickContext

SYSTEM_PERSONA = """\
You are a warm, personal life-design coach.
- Encourage rather than lecture; you are a coach, not a cold assistant
- Ask open questions that let the user find their own inspiration
- Suggest concrete, realistic practices
- Respect the texture of the user's life
- Stay polite and respectful in tone"""


# =============================================================================
# Static Question Banks
# =============================================================================

DISCOVERY_QUESTIONS: dict[str, tuple[str, ...]] = {
    "en": (
        "What have you done lately that made you lose track of time?",
        "Who would you like to be one year from now?",
        "If you could change one thing in your life right now, what would it be?",
        "How would you like the people around you to remember you?",
        "If money and time were unlimited, what would you do first?",
    ),
    "ko": (
        "요즘 시간 가는 줄 모르고 했던 일이 있다면 무엇인가요?",
        "1년 후, 어떤 사람이 되어있고 싶으신가요?",
        "지금 삶에서 가장 바꾸고 싶은 한 가지가 있다면요?",
        "주변 사람들이 당신을 어떤 사람으로 기억했으면 하나요?",
        "돈과 시간이 무한하다면 가장 먼저 하고 싶은 일은 무엇인가요?",
    ),
}

INTERVIEW_QUESTIONS: dict[str, dict[Archetype, tuple[str, ...]]] = {
    "en": {
        Archetype.BUSINESS: (
            "Once you reach this goal, how will your day be different?",
            "What is the one thing you will never give up on this journey?",
            "Which single word best describes you moving toward this goal?",
        ),
        Archetype.GROWTH: (
            "What do you picture yourself doing at the end of this learning?",
            "What scares you most about growing this way?",
            "What do you want to prove through this journey?",
        ),
        Archetype.RELATION: (
            "When this journey is over, who do you hope is smiling beside you?",
            "What do you value most in a relationship?",
            "How do you want the people you love to remember you?",
        ),
        Archetype.ROUTINE: (
            "Who are you once this habit has fully settled in?",
            "Which time of day is the most precious to you?",
            "What would you change first in your current routine?",
        ),
    },
    "ko": {
        Archetype.BUSINESS: (
            "이 목표를 이루었을 때, 당신의 하루는 어떻게 달라져 있을까요?",
            "이 여정에서 절대 포기하지 않을 한 가지가 있다면 무엇인가요?",
            "이 목표를 향해 나아가는 당신을 가장 잘 표현하는 한 단어는 무엇인가요?",
        ),
        Archetype.GROWTH: (
            "이 배움의 끝에서 어떤 일을 하고 있는 자신을 상상하시나요?",
            "성장 과정에서 가장 두려운 것이 있다면 무엇인가요?",
            "이 여정을 통해 당신이 증명하고 싶은 것은 무엇인가요?",
        ),
        Archetype.RELATION: (
            "이 여정을 마쳤을 때 곁에 누가 웃고 있길 바라나요?",
            "관계에서 당신이 가장 소중히 여기는 가치는 무엇인가요?",
            "사랑하는 사람에게 어떤 사람으로 기억되고 싶으신가요?",
        ),
        Archetype.ROUTINE: (
            "이 습관이 완전히 자리잡았을 때의 나는 어떤 사람인가요?",
            "하루 중 가장 소중한 시간대는 언제인가요?",
            "지금의 루틴에서 가장 먼저 바꾸고 싶은 것은 무엇인가요?",
        ),
    },
}


def discovery_questions(lang: LanguageCode | str) -> tuple[str, ...]:
    return DISCOVERY_QUESTIONS.get(lang, DISCOVERY_QUESTIONS["en"])


def interview_questions(archetype: Archetype, lang: LanguageCode | str) -> tuple[str, ...]:
    bank = INTERVIEW_QUESTIONS.get(lang, INTERVIEW_QUESTIONS["en"])
    return bank[Archetype(archetype)]


# =============================================================================
# Formatting Helpers
# =============================================================================

def _language_line(lang: str) -> str:
    return f"Write every user-facing string in {get_language_display_name(lang)}."


def _format_answers(answers: Sequence[InterviewAnswer]) -> str:
    return "\n\n".join(
        f"Q{i}: {a.question}\nA{i}: {a.answer}" for i, a in enumerate(answers, start=1)
    )


def _format_pillars(pillars: Iterable[Pillar]) -> str:
    lines = [f"- {p.title}: {p.description}" if p.description else f"- {p.title}" for p in pillars]
    return "\n".join(lines) or "- (none)"


def _format_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items) or "- (none)"


def _format_quick_context(context: QuickContext | None) -> str:
    if context is None:
        return "(not provided)"
    fields = {
        "Nickname": context.nickname,
        "Life area": context.life_area,
        "Current status": context.current_status,
        "Goal style": context.goal_style,
        "Keyword for the year": context.year_keyword,
    }
    lines = [f"{label}: {value}" for label, value in fields.items() if value]
    return "\n".join(lines) or "(not provided)"


# =============================================================================
# Prompt Builders
# =============================================================================

def archetype_detection(goal: str, context: QuickContext | None, lang: str) -> str:
    return f"""{SYSTEM_PERSONA}

Classify the user's goal into exactly one of four archetypes.

Archetypes:
- BUSINESS: business, career, revenue, performance, promotion, income
- GROWTH: self-improvement, learning, skills, picking up something new
- RELATION: relationships, family, communication, networking, love
- ROUTINE: habits, health, daily routines, lifestyle patterns

User goal: "{goal}"
User profile:
{_format_quick_context(context)}

{_language_line(lang)}

Respond in JSON:
{{
  "archetype": "one of BUSINESS | GROWTH | RELATION | ROUTINE",
  "confidence": number between 0.0 and 1.0,
  "reasoning": "one sentence explaining the classification"
}}
"""


def interview_question_generation(
    archetype: Archetype,
    goal: str,
    context: QuickContext | None,
    lang: str,
    count: int = 3,
) -> str:
    return f"""{SYSTEM_PERSONA}

Write {count} short, open interview questions that help the user understand
what really drives this goal.

Archetype: {archetype}
User goal: "{goal}"
User profile:
{_format_quick_context(context)}

Rules:
- One sentence per question
- Refer to the goal or the profile where it fits
- No yes/no questions

{_language_line(lang)}

Respond in JSON:
{{
  "questions": ["question 1", "question 2", "question 3"]
}}
"""


def interview_summary(archetype: Archetype, goal: str, answers: Sequence[InterviewAnswer], lang: str) -> str:
    return f"""{SYSTEM_PERSONA}

Summarise the texture of the user's life from their interview answers.

Archetype: {archetype}
Goal: "{goal}"
Interview answers:
{_format_answers(answers)}

Rules:
- 2-3 concise sentences
- Capture their values, motivation and temperament
- Warm but insightful

{_language_line(lang)}

Respond in JSON:
{{
  "vibeSummary": "summary of the user's vibe"
}}
"""


def discovery_goal_suggestion(answers: Sequence[InterviewAnswer], lang: str, count: int = 3) -> str:
    return f"""{SYSTEM_PERSONA}

Based on the user's answers, suggest {count} goals worth focusing on this year.

User answers:
{_format_answers(answers)}

Rules:
- Each goal is concrete and measurable
- Each goal reflects the user's interests and values
- Nothing vague or abstract
- One clear sentence per goal

{_language_line(lang)}

Respond in JSON:
{{
  "suggestedGoals": ["goal 1", "goal 2", "goal 3"],
  "summary": "2-3 sentence summary of the user's temperament"
}}
"""


_PILLAR_RULES = """\
- Every category is a practical, concrete area
- It fits the context of the user's life
- Categories are independent and do not overlap
- Titles are 2-4 words
- Descriptions are one sentence"""


def pillar_suggestion(archetype: Archetype, goal: str, vibe_summary: str, lang: str, count: int = 12) -> str:
    return f"""{SYSTEM_PERSONA}

Suggest {count} strategy categories that would help the user reach the goal.

Archetype: {archetype}
Goal: "{goal}"
User vibe: "{vibe_summary}"

Rules:
{_PILLAR_RULES}

{_language_line(lang)}

Respond in JSON:
{{
  "pillars": [
    {{ "id": "pillar_1", "title": "category title", "description": "short description" }},
    ... {count} in total
  ]
}}
"""


def pillar_regeneration(
    archetype: Archetype,
    goal: str,
    vibe_summary: str,
    selected: Sequence[Pillar],
    rejected: Sequence[Pillar],
    count: int,
    lang: str,
) -> str:
    return f"""{SYSTEM_PERSONA}

Suggest {count} new strategy categories for the user's goal.

Archetype: {archetype}
Goal: "{goal}"
User vibe: "{vibe_summary}"

Already selected (do not repeat):
{_format_pillars(selected)}

Already shown and passed over (do not repeat):
{_format_pillars(rejected)}

Rules:
- Nothing that overlaps the categories listed above
{_PILLAR_RULES}

{_language_line(lang)}

Respond in JSON:
{{
  "pillars": [
    {{ "id": "pillar_new_1", "title": "category title", "description": "short description" }},
    ... {count} in total
  ]
}}
"""


_ACTION_RULES = """\
- Never use abstract phrases such as "do my best" or "keep trying"
- Use concrete practices such as "Talk with my kid for 10 minutes at 8pm"
- Time, place, frequency or method must be clear
- Realistic for the user's vibe
- Each action is short, at most about 20 characters or 6 words"""


def action_suggestion(goal: str, vibe_summary: str, pillar: Pillar, lang: str, count: int = 12) -> str:
    return f"""{SYSTEM_PERSONA}

Suggest {count} concrete actions for one strategy area of the user's goal.

Goal: "{goal}"
User vibe: "{vibe_summary}"
Strategy area: {pillar.title} - {pillar.description}

Important rules:
{_ACTION_RULES}

{_language_line(lang)}

Respond in JSON:
{{
  "actions": ["action 1", "action 2", ... {count} in total]
}}
"""


def action_regeneration(
    goal: str,
    vibe_summary: str,
    pillar: Pillar,
    selected: Sequence[str],
    rejected: Sequence[str],
    count: int,
    lang: str,
) -> str:
    return f"""{SYSTEM_PERSONA}

Suggest {count} new concrete actions for one strategy area of the user's goal.

Goal: "{goal}"
User vibe: "{vibe_summary}"
Strategy area: {pillar.title} - {pillar.description}

Already selected (do not repeat):
{_format_list(selected)}

Already shown and passed over (do not repeat):
{_format_list(rejected)}

Important rules:
- Nothing that duplicates the actions listed above
{_ACTION_RULES}

{_language_line(lang)}

Respond in JSON:
{{
  "actions": ["action 1", "action 2", ... {count} in total]
}}
"""


def blessing(goal: str, pillar_titles: Sequence[str], lang: str) -> str:
    return f"""You write witty, warm one-line cheers.

Look at the user's goal for the year and their practice areas, then write
one line of encouragement that is funny but sincere.

Goal: "{goal}"
Practice areas: {", ".join(pillar_titles)}

Rules:
- One sentence, at most 50 characters
- Mentioning the goal or an area is a plus
- No clichés such as "You got this!"
- A touch of wit, but it must feel sincere
- At most one emoji

{_language_line(lang)}

Respond in JSON:
{{
  "blessing": "the message"
}}
"""


__all__ = [
    "SYSTEM_PERSONA",
    "DISCOVERY_QUESTIONS",
    "INTERVIEW_QUESTIONS",
    "discovery_questions",
    "interview_questions",
    "archetype_detection",
    "interview_question_generation",
    "interview_summary",
    "discovery_goal_suggestion",
    "pillar_suggestion",
    "pillar_regeneration",
    "action_suggestion",
    "action_regeneration",
    "blessing",
]
