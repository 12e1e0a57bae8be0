"""
In-memory conversation session store.

Sessions hold the pending resolution state between turns. Idle sessions
expire after ``ttl_seconds``; an expired pending intent is simply dropped and
never executed.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional

from ..execution.models import ExecutionOutcome
from ..intents.models import Intent, ResolutionState


logger = logging.getLogger(__name__)


@dataclass
class DeclinedIntent:
    intent: Intent
    reason: str
    declined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ExecutedIntent:
    intent: Intent
    outcome: ExecutionOutcome


@dataclass
class ConversationSession:
    """Per-session state. At most one pending intent at a time."""

    session_id: str
    user_id: Optional[str] = None
    pending: Optional[ResolutionState] = None
    declined: List[DeclinedIntent] = field(default_factory=list)
    executed: List[ExecutedIntent] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)
    last_active: float = field(default_factory=time.time)
    history_limit: int = 20
    # Turns holding or queued for the lock
    claims: int = field(default=0, repr=False, compare=False)

    @property
    def has_pending(self) -> bool:
        return self.pending is not None

    @property
    def busy(self) -> bool:
        return self.claims > 0 or self.lock.locked()

    def touch(self) -> None:
        self.last_active = time.time()

    def record_declined(self, intent: Intent, reason: str) -> None:
        self.declined.append(DeclinedIntent(intent=intent, reason=reason))
        del self.declined[:-self.history_limit]

    def record_executed(self, intent: Intent, outcome: ExecutionOutcome) -> None:
        self.executed.append(ExecutedIntent(intent=intent, outcome=outcome))
        del self.executed[:-self.history_limit]


class SessionStore:
    """TTL + LRU store for conversation sessions"""

    def __init__(self, ttl_seconds: int = 1800, max_sessions: int = 10000, history_limit: int = 20):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self.history_limit = history_limit
        self._sessions: Dict[str, ConversationSession] = {}
        self._access_order: list = []
        self._lock = asyncio.Lock()

    def _expired(self, session: ConversationSession, now: float) -> bool:
        return self.ttl_seconds > 0 and now - session.last_active > self.ttl_seconds

    def _drop(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session_id in self._access_order:
            self._access_order.remove(session_id)
        if session is not None and session.pending is not None:
            logger.info(f"Dropping pending {session.pending.intent.action_type.value} intent for session {session_id}")

    def _mark_used(self, session_id: str) -> None:
        if session_id in self._access_order:
            self._access_order.remove(session_id)
        self._access_order.append(session_id)

    async def get(self, session_id: str) -> Optional[ConversationSession]:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._expired(session, time.time()) and not session.busy:
                self._drop(session_id)
                return None
            self._mark_used(session_id)
            return session

    async def get_or_create(self, session_id: str, user_id: Optional[str] = None) -> ConversationSession:
        async with self._lock:
            return self._get_or_create(session_id, user_id)

    @asynccontextmanager
    async def turn(self, session_id: str, user_id: Optional[str] = None) -> AsyncIterator[ConversationSession]:
        """
        Hold a session's lock for one conversational turn.

        The session is claimed before waiting on its lock, so neither eviction
        nor expiry can drop it while a turn is queued behind another.
        """
        async with self._lock:
            session = self._get_or_create(session_id, user_id)
            session.claims += 1
        try:
            async with session.lock:
                yield session
        finally:
            session.claims -= 1

    def _get_or_create(self, session_id: str, user_id: Optional[str]) -> ConversationSession:
        session = self._sessions.get(session_id)
        if session is not None and self._expired(session, time.time()) and not session.busy:
            self._drop(session_id)
            session = None

        if session is None:
            session = ConversationSession(
                session_id=session_id,
                user_id=user_id,
                history_limit=self.history_limit,
            )
            self._sessions[session_id] = session
        elif user_id and not session.user_id:
            session.user_id = user_id

        self._mark_used(session_id)
        self._evict(keep=session_id)
        return session

    def _evict(self, keep: Optional[str] = None) -> None:
        # Busy sessions are skipped; they become eligible once released
        for session_id in list(self._access_order):
            if len(self._sessions) <= self.max_sessions:
                break
            if session_id == keep or self._sessions[session_id].busy:
                continue
            self._drop(session_id)

    async def remove(self, session_id: str) -> None:
        async with self._lock:
            self._drop(session_id)

    async def purge_expired(self) -> int:
        async with self._lock:
            now = time.time()
            expired = [
                session_id for session_id, session in self._sessions.items()
                if self._expired(session, now) and not session.busy
            ]
            for session_id in expired:
                self._drop(session_id)
            return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._sessions.clear()
            self._access_order.clear()

    def size(self) -> int:
        return len(self._sessions)
