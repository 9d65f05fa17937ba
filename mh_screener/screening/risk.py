"""Coarse, rule-based risk classification of a screening response set.

Two variants are kept on purpose:

* ``basic_risk_level`` looks at mood, stress and symptom count only and calls
  two indicators High. The single-shot screening path uses it.
* ``extended_risk_level`` adds suicidal ideation, sleep change and social
  support. Suicidal ideation alone is High; otherwise three indicators are
  needed for High. The conversational path always uses it.

Both are total: unknown or malformed answers simply do not trigger.
"""
from __future__ import annotations

from typing import Any, Dict

from .models import RISK_HIGH, RISK_LOW, RISK_MODERATE, ResponseSet

LOW_MOOD_VALUES = {"1", "2"}
STRESS_THRESHOLD = 7
AFFIRMATIVE = {"yes", "y", "true", "1"}
NEGATIVE = {"no", "n", "none", "false", "0"}


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().lower()


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def low_mood(responses: ResponseSet) -> bool:
    mood = responses.get("mood", responses.get("mood_rating"))
    return mood is not None and _as_text(mood) in LOW_MOOD_VALUES


def high_stress(responses: ResponseSet) -> bool:
    stress = _as_number(responses.get("stress_level"))
    return stress is not None and stress > STRESS_THRESHOLD


def multiple_symptoms(responses: ResponseSet) -> bool:
    symptoms = responses.get("symptoms")
    return isinstance(symptoms, (list, tuple)) and len(symptoms) > 1


def suicidal_ideation(responses: ResponseSet) -> bool:
    value = responses.get("suicidal_thoughts")
    return value is not None and _as_text(value) in AFFIRMATIVE


def sleep_disruption(responses: ResponseSet) -> bool:
    value = responses.get("sleep_changes")
    return value is not None and _as_text(value) == "significant"


def lacks_social_support(responses: ResponseSet) -> bool:
    value = responses.get("social_support")
    return value is not None and _as_text(value) in NEGATIVE


def basic_indicators(responses: ResponseSet) -> Dict[str, bool]:
    return {
        "mood": low_mood(responses),
        "stress": high_stress(responses),
        "symptoms": multiple_symptoms(responses),
    }


def extended_indicators(responses: ResponseSet) -> Dict[str, bool]:
    indicators = basic_indicators(responses)
    indicators.update({
        "suicidal": suicidal_ideation(responses),
        "sleep": sleep_disruption(responses),
        "social_support": lacks_social_support(responses),
    })
    return indicators


def basic_risk_level(responses: ResponseSet) -> str:
    count = sum(basic_indicators(responses).values())
    if count >= 2:
        return RISK_HIGH
    if count == 1:
        return RISK_MODERATE
    return RISK_LOW


def extended_risk_level(responses: ResponseSet) -> str:
    indicators = extended_indicators(responses)
    # safety first: ideation overrides every other signal
    if indicators["suicidal"]:
        return RISK_HIGH
    count = sum(indicators.values())
    if count >= 3:
        return RISK_HIGH
    if count >= 1:
        return RISK_MODERATE
    return RISK_LOW
