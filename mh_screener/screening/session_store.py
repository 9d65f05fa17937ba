from __future__ import annotations

import abc
import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from .models import ScreeningSession, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


class SessionStore(abc.ABC):
    """Keyed store of in-progress screening sessions with time-boxed expiry."""

    async def create(self) -> ScreeningSession:
        # not persisted until put()
        return ScreeningSession(id=new_session_id())

    @abc.abstractmethod
    async def get(self, session_id: str) -> Optional[ScreeningSession]:
        ...

    @abc.abstractmethod
    async def put(self, session_id: str, session: ScreeningSession) -> None:
        ...

    @abc.abstractmethod
    async def expire(self, session_id: str) -> None:
        ...

    async def aclose(self) -> None:
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store. Sessions vanish on restart.

    Every put() (re)schedules eviction ``ttl_seconds`` after that write, so a
    session lives for one TTL past its most recent update. get() also checks
    the age against ``clock`` in case the timer has not fired yet.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: Dict[str, ScreeningSession] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def get(self, session_id: str) -> Optional[ScreeningSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._clock() - session.last_updated >= self.ttl:
            self._evict(session_id)
            return None
        return session

    async def put(self, session_id: str, session: ScreeningSession) -> None:
        self._sessions[session_id] = session
        self._cancel_timer(session_id)
        loop = asyncio.get_running_loop()
        self._timers[session_id] = loop.call_later(
            self.ttl.total_seconds(), self._evict, session_id
        )

    async def expire(self, session_id: str) -> None:
        self._cancel_timer(session_id)
        self._sessions.pop(session_id, None)

    async def aclose(self) -> None:
        for session_id in list(self._timers):
            self._cancel_timer(session_id)

    def _evict(self, session_id: str) -> None:
        self._timers.pop(session_id, None)
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Session %s expired and removed", session_id)

    def _cancel_timer(self, session_id: str) -> None:
        handle = self._timers.pop(session_id, None)
        if handle is not None:
            handle.cancel()
