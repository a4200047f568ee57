from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, TypeVar

from .errors import CodeCollision, SessionNotFound
from .models import GameSession
from .utils import normalize_code

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionStore:
    """Authoritative in-memory table of game sessions.

    Sessions are indexed by id and by join code. Readers get deep copies;
    the live object is only reachable through :meth:`with_lock`, which
    serialises callers per session id. Different sessions never share a lock.
    """

    def __init__(self):
        self._sessions: Dict[str, GameSession] = {}
        self._codes: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def session_ids(self) -> List[str]:
        return list(self._sessions)

    def has_code(self, code: str) -> bool:
        return normalize_code(code) in self._codes

    def get(self, session_id: str) -> GameSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session.model_copy(deep=True)

    def get_by_code(self, code: str) -> GameSession:
        session_id = self._codes.get(normalize_code(code))
        if session_id is None:
            raise SessionNotFound(code)
        return self.get(session_id)

    def resolve_code(self, code: str) -> str:
        session_id = self._codes.get(normalize_code(code))
        if session_id is None:
            raise SessionNotFound(code)
        return session_id

    def insert(self, session: GameSession) -> None:
        code = normalize_code(session.code)
        if code in self._codes:
            raise CodeCollision(code)
        if session.id in self._sessions:
            raise ValueError(f"Duplicate session id: {session.id}")

        session.code = code
        self._sessions[session.id] = session
        self._codes[code] = session.id
        self._locks[session.id] = asyncio.Lock()
        logger.debug("Stored session %s with code %s", session.id, code)

    @asynccontextmanager
    async def locked(self, session_id: str) -> AsyncIterator[GameSession]:
        lock = self._locks.get(session_id)
        if lock is None:
            raise SessionNotFound(session_id)

        async with lock:
            # The session may have been removed while we waited for the lock.
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            yield session

    async def with_lock(self, session_id: str, fn: Callable[[GameSession], T]) -> T:
        async with self.locked(session_id) as session:
            return fn(session)

    async def remove(self, session_id: str) -> bool:
        return await self.remove_if(session_id, lambda _session: True)

    async def remove_if(self, session_id: str, predicate: Callable[[GameSession], bool]) -> bool:
        """Remove a session if ``predicate`` holds, evaluated under its lock."""
        try:
            async with self.locked(session_id) as session:
                if not predicate(session):
                    return False
                self._discard(session)
        except SessionNotFound:
            return False
        return True

    def _discard(self, session: GameSession) -> None:
        """Drop a session from both indexes. Caller must hold its lock."""
        self._sessions.pop(session.id, None)
        if self._codes.get(session.code) == session.id:
            del self._codes[session.code]
        self._locks.pop(session.id, None)
        logger.debug("Removed session %s (code %s)", session.id, session.code)
