"""
app/services/session_service.py

Purpose: Session and state management

- In-memory conversation state per identity (never persisted)
- One asyncio.Lock per identity; events for the same user run one at a time
- Idle sessions are swept after SESSION_IDLE_HOURS, unless their lock is held
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.flow.states import ConversationState
from app.flow.types import Flow
from utils.time_utils import is_idle, utcnow

logger = get_logger(__name__)


@dataclass
class Session:
    identity: str
    state: ConversationState
    flow: Flow = None
    last_activity: datetime = field(default_factory=utcnow)


class SessionStore:
    def __init__(self, idle_hours: Optional[int] = None):
        self.idle_hours = idle_hours or settings.SESSION_IDLE_HOURS
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def lock(self, identity: str) -> asyncio.Lock:
        """
        Returns the identity's lock, creating it on first use.

        Usage:
            async with session_store.lock(identity):
                ...
        """
        lock = self._locks.get(identity)
        if lock is None:
            lock = self._locks[identity] = asyncio.Lock()
        return lock

    def get(self, identity: str) -> Optional[Session]:
        return self._sessions.get(identity)

    def get_or_create(self, identity: str, default_state: ConversationState) -> Session:
        session = self._sessions.get(identity)
        if session is None:
            session = Session(identity=identity, state=default_state)
            self._sessions[identity] = session
        return session

    def save(self, session: Session, now: Optional[datetime] = None):
        session.last_activity = now or utcnow()
        self._sessions[session.identity] = session

    def sweep_idle(self, now: Optional[datetime] = None) -> int:
        """
        Evicts idle sessions. Safe to call repeatedly.

        Returns:
            Number of sessions evicted
        """
        now = now or utcnow()
        evicted = 0

        for identity, session in list(self._sessions.items()):
            if not is_idle(session.last_activity, self.idle_hours, now=now):
                continue
            lock = self._locks.get(identity)
            if lock is not None and lock.locked():
                continue
            del self._sessions[identity]
            self._locks.pop(identity, None)
            evicted += 1

        if evicted:
            logger.info(f"🧹 Evicted {evicted} idle session(s), {len(self._sessions)} active")
        return evicted

    async def run_sweeper(self, interval_seconds: Optional[int] = None):
        """
        Background loop; cancel the task to stop it.
        """
        interval = interval_seconds or settings.SESSION_SWEEP_INTERVAL_SECONDS
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep_idle()
            except Exception as e:
                logger.error(f"❌ Session sweep failed: {e}", exc_info=True)
