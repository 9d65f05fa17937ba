from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.errors import UpstreamError, UpstreamParseError
from ..screening.fallback import generate_fallback, generate_single_shot_fallback
from ..screening.models import (
    RISK_LEVELS,
    RISK_MODERATE,
    AnalysisResult,
    ConversationTurn,
    GatewayResult,
    ResponseSet,
    ScreeningOutcome,
    serialize_responses,
)
from ..screening.resources import load_resources
from .anthropic_client import GatewayConfig, create_message
from .prompts import build_prompt, build_single_shot_prompt

logger = logging.getLogger(__name__)

MAX_FOLLOW_UPS = 3


class ModelReply(BaseModel):
    """Shape the model is asked to reply with. Missing keys take defaults."""

    model_config = ConfigDict(extra="ignore")

    risk_level: str = RISK_MODERATE
    observations: List[str] = Field(default_factory=list)
    recommended_resources: Dict[str, List[str]] = Field(default_factory=dict)
    guidance: str = ""
    follow_up_questions: List[str] = Field(default_factory=list)
    conversation_complete: bool = False

    @field_validator("risk_level", mode="before")
    @classmethod
    def _risk_level(cls, v: Any) -> str:
        if v is None:
            return RISK_MODERATE
        if isinstance(v, str):
            for level in RISK_LEVELS:
                if v.strip().lower() == level.lower():
                    return level
        raise ValueError(f"unknown risk level {v!r}")

    @field_validator("observations", "follow_up_questions", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("recommended_resources", mode="before")
    @classmethod
    def _none_map(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("guidance", mode="before")
    @classmethod
    def _none_str(cls, v: Any) -> Any:
        return "" if v is None else v


def decode_reply(text: str) -> ModelReply:
    """Strictly decode and validate the model's raw text."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise UpstreamParseError(f"model reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise UpstreamParseError(f"model reply is a JSON {type(data).__name__}, not an object")
    try:
        return ModelReply.model_validate(data)
    except ValidationError as e:
        raise UpstreamParseError(f"model reply has the wrong shape: {e.error_count()} errors") from e


def to_outcome(reply: ModelReply) -> ScreeningOutcome:
    complete = reply.conversation_complete
    questions = [] if complete else [q for q in reply.follow_up_questions if q.strip()][:MAX_FOLLOW_UPS]
    return ScreeningOutcome(
        analysis=AnalysisResult(
            risk_level=reply.risk_level,
            observations=reply.observations,
            recommended_resources=reply.recommended_resources,
            guidance=reply.guidance,
        ),
        follow_up_questions=questions,
        conversation_complete=complete,
        using_fallback=False,
    )


class ModelGateway:
    """Single point of contact with the model provider.

    ``step`` and ``analyze`` never raise for upstream trouble: every transport
    or decode failure is logged and answered by the deterministic fallback.
    """

    def __init__(self, config: GatewayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    @property
    def resources(self) -> Dict[str, Any]:
        return load_resources(self.config.resources_path)

    async def step(self, responses: ResponseSet, history: List[ConversationTurn]) -> GatewayResult:
        if not self.config.configured:
            logger.warning("No model API key configured; using fallback")
            return generate_fallback(responses, history, self.resources)

        prompt = build_prompt(responses, history)
        messages = [t.model_dump() for t in history]
        messages.append({"role": "user", "content": prompt})
        try:
            text = await create_message(self.config, messages, transport=self._transport)
            reply = decode_reply(text)
        except UpstreamError as e:
            logger.warning("Model step failed (%s): %s; using fallback", type(e).__name__, e)
            return generate_fallback(responses, history, self.resources)

        new_history = list(history) + [
            ConversationTurn(role="user", content=serialize_responses(responses)),
            ConversationTurn(role="assistant", content=text),
        ]
        return GatewayResult(outcome=to_outcome(reply), history=new_history)

    async def analyze(self, responses: ResponseSet) -> Tuple[AnalysisResult, bool]:
        """Single-shot assessment. Returns the analysis and whether the fallback produced it."""
        if not self.config.configured:
            logger.warning("No model API key configured; using single-shot fallback")
            return generate_single_shot_fallback(responses, self.resources), True

        messages = [{"role": "user", "content": build_single_shot_prompt(responses)}]
        try:
            text = await create_message(self.config, messages, transport=self._transport)
            reply = decode_reply(text)
        except UpstreamError as e:
            logger.warning("Single-shot analysis failed (%s): %s; using fallback", type(e).__name__, e)
            return generate_single_shot_fallback(responses, self.resources), True
        return to_outcome(reply).analysis, False

    async def ping(self) -> bool:
        if not self.config.configured:
            return False
        try:
            await create_message(
                self.config,
                [{"role": "user", "content": "Hello"}],
                max_tokens=10,
                transport=self._transport,
            )
        except UpstreamError as e:
            logger.warning("Model provider ping failed: %s", e)
            return False
        return True
