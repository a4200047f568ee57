from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Dict, Optional, Set

from pydantic import BaseModel, Field

from .errors import SessionNotFound
from .models import GameSession
from .store import SessionStore
from .utils import now_ts

logger = logging.getLogger(__name__)

INIT = "init"
HEARTBEAT = "heartbeat"
SESSION_MISSING = "session-missing"


class Event(BaseModel):
    type: str
    session: Optional[GameSession] = None
    timestamp: float = Field(default_factory=now_ts)


def format_sse(event: Event) -> str:
    """Encode an event as a server-sent-events frame."""
    if event.type == HEARTBEAT:
        return ": heartbeat\n\n"
    return f"data: {event.model_dump_json(by_alias=True)}\n\n"


class Subscription:
    """One client's bounded event channel.

    Iterating yields events until the subscription is closed. Writers never
    wait: :meth:`offer` reports ``False`` when the channel is closed or full.
    """

    def __init__(self, session_id: str, queue_size: int = 64):
        self.id = uuid.uuid4().hex
        self.session_id = session_id
        self._queue: asyncio.Queue[Optional[Event]] = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        self._finished = False
        self._heartbeat: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: Event) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        task = self._heartbeat
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        # Wake the reader; make room for the end marker if the queue is full.
        while True:
            try:
                self._queue.put_nowait(None)
                break
            except asyncio.QueueFull:
                self._queue.get_nowait()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Event:
        if self._finished:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None:
            self._finished = True
            raise StopAsyncIteration
        return event


class BroadcastHub:
    """Push snapshots to every live subscriber of a session.

    The subscriber registry has its own lock and never touches session
    locks. Delivery is a non-blocking put, so a slow or dead client is pruned
    instead of holding up the publisher or the other subscribers.
    """

    def __init__(self, store: SessionStore, heartbeat_interval: float = 15.0, queue_size: int = 64):
        self.store = store
        self.heartbeat_interval = heartbeat_interval
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[Subscription]] = {}
        self._lock = asyncio.Lock()

    def subscriber_count(self, session_id: str) -> int:
        return len(self._subscribers.get(session_id, ()))

    async def subscribe(self, session_id: str) -> Subscription:
        sub = Subscription(session_id, self.queue_size)

        async with self._lock:
            # Snapshot and registration happen together, so no publish falls between them.
            try:
                sub.offer(Event(type=INIT, session=self.store.get(session_id)))
            except SessionNotFound:
                logger.warning("Subscriber %s joined missing session %s", sub.id, session_id)
                sub.offer(Event(type=SESSION_MISSING))
            self._subscribers.setdefault(session_id, set()).add(sub)
            count = len(self._subscribers[session_id])

        sub._heartbeat = asyncio.create_task(self._heartbeat_loop(sub))
        logger.info("Subscriber %s opened for %s, total connections: %d", sub.id, session_id, count)
        return sub

    async def unsubscribe(self, sub: Subscription) -> None:
        async with self._lock:
            self._discard(sub)
            remaining = self.subscriber_count(sub.session_id)
        sub.close()
        logger.info("Subscriber %s closed for %s, remaining: %d", sub.id, sub.session_id, remaining)

    def _discard(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.session_id)
        if not subs:
            return
        subs.discard(sub)
        if not subs:
            del self._subscribers[sub.session_id]

    async def publish(self, session_id: str, session: GameSession, event_type: str) -> int:
        async with self._lock:
            subs = list(self._subscribers.get(session_id, ()))

        if not subs:
            logger.debug("No connections to broadcast %s for %s", event_type, session_id)
            return 0

        event = Event(type=event_type, session=session)
        delivered = 0
        dead = []
        for sub in subs:
            if sub.offer(event):
                delivered += 1
            else:
                dead.append(sub)

        if dead:
            async with self._lock:
                for sub in dead:
                    self._discard(sub)
            for sub in dead:
                sub.close()
            logger.info("Pruned %d dead subscribers from %s", len(dead), session_id)

        logger.info(
            "Broadcast %s to %d/%d clients, phase: %s",
            event_type, delivered, len(subs), session.current_phase.value,
        )
        return delivered

    async def drop_session(self, session_id: str) -> int:
        async with self._lock:
            subs = self._subscribers.pop(session_id, set())
        for sub in subs:
            sub.close()
        if subs:
            logger.info("Dropped %d subscribers of %s", len(subs), session_id)
        return len(subs)

    async def close(self) -> None:
        async with self._lock:
            subs = [sub for group in self._subscribers.values() for sub in group]
            self._subscribers.clear()
        for sub in subs:
            sub.close()

    async def _heartbeat_loop(self, sub: Subscription) -> None:
        while not sub.closed:
            await asyncio.sleep(self.heartbeat_interval)
            if not sub.offer(Event(type=HEARTBEAT)):
                if not sub.closed:
                    logger.debug("Heartbeat to %s failed; pruning", sub.id)
                    await self.unsubscribe(sub)
                return
