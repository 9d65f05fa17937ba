from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Mapping
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from ..core.errors import ClientInputError, SessionNotFoundError
from ..llm.gateway import ModelGateway
from .models import (
    ConversationTurn,
    LegacyResult,
    ScreeningSession,
    SubmitResult,
    utcnow,
)
from .session_store import SessionStore

logger = logging.getLogger(__name__)

_history_adapter = TypeAdapter(List[ConversationTurn])


def validate_responses(responses: Any) -> dict:
    if responses is None or not isinstance(responses, Mapping):
        raise ClientInputError("responses must be a mapping of question id to answer")
    return dict(responses)


HISTORY_ERROR = "Invalid request: conversationHistory must alternate user and assistant turns"


def validate_history(history: Any) -> List[ConversationTurn]:
    try:
        turns = _history_adapter.validate_python(history)
    except ValidationError as e:
        raise ClientInputError(
            f"invalid conversation history: {e.error_count()} errors", HISTORY_ERROR
        ) from e
    # user first, then strictly alternating
    for i, turn in enumerate(turns):
        expected = "user" if i % 2 == 0 else "assistant"
        if turn.role != expected:
            raise ClientInputError(
                f"conversation history turn {i} is {turn.role!r}, expected {expected!r}", HISTORY_ERROR
            )
    if len(turns) % 2:
        raise ClientInputError("conversation history ends on an unanswered user turn", HISTORY_ERROR)
    return turns


class ScreeningOrchestrator:
    """Entry point for screening requests.

    ``submit`` drives the resumable multi-turn screening against the session
    store; ``legacy_submit`` is the older stateless contract and never touches
    the store.
    """

    def __init__(self, gateway: ModelGateway, store: SessionStore):
        self.gateway = gateway
        self.store = store
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def submit(self, session_id: Optional[str], responses: Any) -> SubmitResult:
        responses = validate_responses(responses)

        if session_id:
            lock = self._lock_for(session_id)
            async with lock:
                session = await self.store.get(session_id)
                if session is not None:
                    return await self._advance(session, responses)
            logger.info("Session %s not found; starting a new one", session_id)

        session = await self.store.create()
        logger.info("Created screening session %s", session.id)
        return await self._advance(session, responses)

    async def _advance(self, session: ScreeningSession, responses: dict) -> SubmitResult:
        result = await self.gateway.step(responses, session.history)

        session.history = result.history
        session.is_complete = result.outcome.conversation_complete
        session.last_updated = utcnow()
        await self.store.put(session.id, session)

        if session.is_complete:
            logger.info(
                "Session %s complete after %d turns (fallback=%s)",
                session.id, len(session.history), result.outcome.using_fallback,
            )
        return SubmitResult(session_id=session.id, outcome=result.outcome)

    async def status(self, session_id: str) -> ScreeningSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def legacy_submit(self, responses: Any, conversation_history: Any = None) -> LegacyResult:
        responses = validate_responses(responses)

        if conversation_history is None:
            analysis, used_fallback = await self.gateway.analyze(responses)
            return LegacyResult(analysis=analysis, using_fallback=used_fallback)

        history = validate_history(conversation_history)
        result = await self.gateway.step(responses, history)
        return LegacyResult(
            analysis=result.outcome.analysis,
            using_fallback=result.outcome.using_fallback,
            follow_up_questions=result.outcome.follow_up_questions,
            conversation_complete=result.outcome.conversation_complete,
            history=result.history,
        )
