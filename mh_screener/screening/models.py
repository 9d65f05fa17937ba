from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

RISK_LOW = "Low"
RISK_MODERATE = "Moderate"
RISK_HIGH = "High"
RISK_LEVELS = (RISK_LOW, RISK_MODERATE, RISK_HIGH)

RiskLevel = Literal["Low", "Moderate", "High"]

# question-id -> answer (string, number, or list of strings)
ResponseSet = Dict[str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def serialize_responses(responses: ResponseSet) -> str:
    return json.dumps(responses, indent=2, ensure_ascii=False, default=str)


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AnalysisResult(BaseModel):
    risk_level: RiskLevel = RISK_MODERATE
    observations: List[str] = Field(default_factory=list)
    recommended_resources: Dict[str, List[str]] = Field(default_factory=dict)
    guidance: str = ""


class ScreeningOutcome(BaseModel):
    analysis: AnalysisResult = Field(default_factory=AnalysisResult)
    follow_up_questions: List[str] = Field(default_factory=list)
    conversation_complete: bool = False
    using_fallback: bool = False


@dataclass
class ScreeningSession:
    id: str
    history: List[ConversationTurn] = field(default_factory=list)
    is_complete: bool = False
    last_updated: datetime = field(default_factory=utcnow)


@dataclass
class GatewayResult:
    outcome: ScreeningOutcome
    history: List[ConversationTurn]


@dataclass
class SubmitResult:
    session_id: str
    outcome: ScreeningOutcome


@dataclass
class LegacyResult:
    analysis: AnalysisResult
    using_fallback: bool
    # only set when the caller supplied a conversation history
    follow_up_questions: Optional[List[str]] = None
    conversation_complete: Optional[bool] = None
    history: Optional[List[ConversationTurn]] = None
