from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from .events import BroadcastHub
from .store import SessionStore
from .utils import now_ts

logger = logging.getLogger(__name__)


class SessionReaper:
    """Periodically evict sessions that have been idle for too long.

    Sessions live only in memory, so this sweep is what bounds the store.
    """

    def __init__(
        self,
        store: SessionStore,
        hub: Optional[BroadcastHub] = None,
        interval: float = 10 * 60,
        max_inactive: float = 60 * 60,
    ):
        self.store = store
        self.hub = hub
        self.interval = interval
        self.max_inactive = max_inactive
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self, max_inactive: Optional[float] = None) -> List[str]:
        """Remove every session idle for more than ``max_inactive`` seconds."""
        threshold = self.max_inactive if max_inactive is None else max_inactive
        removed: List[str] = []

        for session_id in self.store.session_ids():
            cutoff = now_ts() - threshold
            # Checked again under the session lock: a mutation in flight may
            # have just refreshed last_activity.
            if await self.store.remove_if(session_id, lambda s: s.last_activity < cutoff):
                removed.append(session_id)
                if self.hub is not None:
                    await self.hub.drop_session(session_id)

        if removed:
            logger.info("Reaped %d inactive sessions, %d remaining", len(removed), len(self.store))
        return removed

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Session reaper started (every %ss, threshold %ss)", self.interval, self.max_inactive)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Session sweep failed")
