"""
Translation strings for AI Mandalart.

Contains the user-facing labels for:
- wizard steps (name + short description)
- quick-context option values

Structure: {language: {module: {key: value}}}
"""

from __future__ import annotations

from typing import Any

from mandalart.i18n import DEFAULT_LANGUAGE, normalize_language

TRANSLATIONS: dict[str, dict[str, dict[str, str]]] = {
    "en": {
        "steps": {
            "QUICK_CONTEXT": "About you",
            "QUICK_CONTEXT_desc": "Tell us a little about yourself",
            "GOAL_INPUT": "Your goal",
            "GOAL_INPUT_desc": "Your core goal in one sentence",
            "DISCOVERY": "Find a goal",
            "DISCOVERY_desc": "Discover a goal that fits you",
            "ARCHETYPE_RESULT": "Goal type",
            "ARCHETYPE_RESULT_desc": "What kind of goal this is",
            "INTERVIEW": "Interview",
            "INTERVIEW_desc": "Three questions to go deeper",
            "PILLAR_SELECTION": "Strategies",
            "PILLAR_SELECTION_desc": "Choose 8 key areas",
            "ACTION_SELECTION": "Actions",
            "ACTION_SELECTION_desc": "Choose 8 actions for each area",
            "GENERATING": "Building",
            "GENERATING_desc": "Your plan is being put together",
            "RESULT": "Done",
            "RESULT_desc": "Your own Mandalart",
        },
        "quick_context": {
            "career": "Career",
            "health": "Health",
            "relationships": "Relationships",
            "finance": "Finance",
            "self_growth": "Self-growth",
            "hobby": "Hobbies",
            "student": "Student",
            "employee": "Employee",
            "founder": "Founder",
            "freelancer": "Freelancer",
            "job_seeking": "Job seeking",
            "other": "Other",
            "challenging": "Challenging",
            "stable": "Stable",
            "experimental": "Experimental",
            "recharge": "Recovery / recharge",
            "growth": "Growth",
            "change": "Change",
            "stability": "Stability",
            "challenge": "Challenge",
            "balance": "Balance",
            "recovery": "Recovery",
        },
        "pillars": {
            "custom_description": "{title}-related practice area",
        },
    },
    "ko": {
        "steps": {
            "QUICK_CONTEXT": "나를 알려주기",
            "QUICK_CONTEXT_desc": "당신에 대해 알려주세요",
            "GOAL_INPUT": "목표 입력",
            "GOAL_INPUT_desc": "핵심 목표를 한 문장으로",
            "DISCOVERY": "목표 발견",
            "DISCOVERY_desc": "나에게 맞는 목표 찾기",
            "ARCHETYPE_RESULT": "유형 분석",
            "ARCHETYPE_RESULT_desc": "목표 성격 파악",
            "INTERVIEW": "심층 인터뷰",
            "INTERVIEW_desc": "3가지 질문으로 깊이 탐색",
            "PILLAR_SELECTION": "전략 선택",
            "PILLAR_SELECTION_desc": "8가지 핵심 영역 선택",
            "ACTION_SELECTION": "실천 선택",
            "ACTION_SELECTION_desc": "각 영역별 8가지 실천 항목 선택",
            "GENERATING": "계획 생성",
            "GENERATING_desc": "AI가 계획을 만들고 있습니다",
            "RESULT": "완성",
            "RESULT_desc": "나만의 만다라트",
        },
        "quick_context": {
            "career": "커리어",
            "health": "건강",
            "relationships": "관계",
            "finance": "재정",
            "self_growth": "자기계발",
            "hobby": "취미",
            "student": "학생",
            "employee": "직장인",
            "founder": "창업자",
            "freelancer": "프리랜서",
            "job_seeking": "구직중",
            "other": "기타",
            "challenging": "도전적",
            "stable": "안정적",
            "experimental": "실험적",
            "recharge": "회복/재충전",
            "growth": "성장",
            "change": "변화",
            "stability": "안정",
            "challenge": "도전",
            "balance": "균형",
            "recovery": "회복",
        },
        "pillars": {
            "custom_description": "{title} 관련 실천 영역",
        },
    },
}


def t(lang: str, module: str, key: str, **kwargs: Any) -> str:
    """
    Look up a translated string, falling back to English, then to the key.

    Args:
        lang: Language code or locale
        module: Section name (e.g. "steps")
        key: Translation key
        **kwargs: Values interpolated with str.format

    Returns:
        Translated (and formatted) string
    """
    code = normalize_language(lang)
    template = (
        TRANSLATIONS.get(code, {}).get(module, {}).get(key)
        or TRANSLATIONS[DEFAULT_LANGUAGE].get(module, {}).get(key)
        or key
    )
    if kwargs:
        try:
            return template.format(**kwargs)
        except (KeyError, IndexError):
            return template
    return template


def step_info(lang: str) -> dict[str, dict[str, str]]:
    """Name and description of every wizard step in the given language."""
    steps = TRANSLATIONS[DEFAULT_LANGUAGE]["steps"]
    return {
        key: {"name": t(lang, "steps", key), "description": t(lang, "steps", f"{key}_desc")}
        for key in steps
        if not key.endswith("_desc")
    }


__all__ = ["TRANSLATIONS", "t", "step_info"]
