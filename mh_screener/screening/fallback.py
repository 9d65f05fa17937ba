from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional

from .models import (
    AnalysisResult,
    ConversationTurn,
    GatewayResult,
    ResponseSet,
    ScreeningOutcome,
    serialize_responses,
)
from .resources import load_resources
from .risk import basic_risk_level, extended_risk_level


def generate_fallback(
    responses: ResponseSet,
    history: List[ConversationTurn],
    resources: Optional[Dict[str, Any]] = None,
) -> GatewayResult:
    """Build a complete screening step without calling the model.

    With no history this is the opening turn: a heuristic risk level and three
    generic follow-up questions. With history it finalizes the screening and
    hands out the static resource directory.

    The exchange is recorded as a user turn plus an assistant turn holding the
    fallback payload, so the history keeps alternating and keeps growing.
    Recording the assistant turn on both branches is deliberate: appending a
    lone user turn, or passing the history through untouched, would leave two
    user turns in a row for the next model call and stall history growth
    while the model is down.
    """
    resources = resources or load_resources()
    risk_level = extended_risk_level(responses)

    if not history:
        outcome = ScreeningOutcome(
            analysis=AnalysisResult(risk_level=risk_level),
            follow_up_questions=list(resources["follow_up_questions"][:3]),
            conversation_complete=False,
            using_fallback=True,
        )
    else:
        outcome = ScreeningOutcome(
            analysis=AnalysisResult(
                risk_level=risk_level,
                observations=list(resources["observations"]),
                recommended_resources=copy.deepcopy(resources["recommended_resources"]),
                guidance=resources["guidance"],
            ),
            follow_up_questions=[],
            conversation_complete=True,
            using_fallback=True,
        )

    new_history = list(history) + [
        ConversationTurn(role="user", content=serialize_responses(responses)),
        ConversationTurn(role="assistant", content=_payload_text(outcome)),
    ]
    return GatewayResult(outcome=outcome, history=new_history)


def generate_single_shot_fallback(
    responses: ResponseSet,
    resources: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    resources = resources or load_resources()
    return AnalysisResult(
        risk_level=basic_risk_level(responses),
        observations=list(resources["observations"]),
        recommended_resources=copy.deepcopy(resources["recommended_resources"]),
        guidance=resources["guidance"],
    )


def _payload_text(outcome: ScreeningOutcome) -> str:
    # same keys the model is asked to emit
    payload = outcome.analysis.model_dump()
    payload["follow_up_questions"] = outcome.follow_up_questions
    payload["conversation_complete"] = outcome.conversation_complete
    return json.dumps(payload, ensure_ascii=False)
