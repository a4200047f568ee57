from __future__ import annotations

import asyncio
import json
from unittest import IsolatedAsyncioTestCase

from .events import HEARTBEAT, INIT, SESSION_MISSING, BroadcastHub, Event, format_sse
from .models import GameSession, Phase, Player
from .store import SessionStore


def _session(session_id: str = "s1") -> GameSession:
    host = Player(id="host", name="Alice", color="#EF4444", is_host=True)
    return GameSession(id=session_id, code="ABCD", host_id="host", players=[host])


async def _next(sub, timeout: float = 1.0) -> Event:
    return await asyncio.wait_for(sub.__anext__(), timeout)


class BroadcastHubTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = SessionStore()
        self.store.insert(_session())
        self.hub = BroadcastHub(self.store, heartbeat_interval=60)

    async def asyncTearDown(self) -> None:
        await self.hub.close()

    async def test_subscribe_sends_init_snapshot(self):
        sub = await self.hub.subscribe("s1")

        event = await _next(sub)
        self.assertEqual(event.type, INIT)
        self.assertEqual(event.session.id, "s1")
        self.assertEqual(event.session.current_phase, Phase.LOBBY)
        self.assertEqual(self.hub.subscriber_count("s1"), 1)

    async def test_subscribe_to_missing_session_signals_absence(self):
        sub = await self.hub.subscribe("nope")

        event = await _next(sub)
        self.assertEqual(event.type, SESSION_MISSING)
        self.assertIsNone(event.session)

    async def test_publish_reaches_every_subscriber(self):
        first = await self.hub.subscribe("s1")
        second = await self.hub.subscribe("s1")
        other = await self.hub.subscribe("s2")
        for sub in (first, second, other):
            await _next(sub)

        snapshot = self.store.get("s1")
        delivered = await self.hub.publish("s1", snapshot, "player-joined")

        self.assertEqual(delivered, 2)
        for sub in (first, second):
            event = await _next(sub)
            self.assertEqual(event.type, "player-joined")
            self.assertEqual(event.session.id, "s1")
        with self.assertRaises(asyncio.TimeoutError):
            await _next(other, timeout=0.05)

    async def test_publish_without_subscribers_is_a_no_op(self):
        self.assertEqual(await self.hub.publish("s1", self.store.get("s1"), "game-started"), 0)

    async def test_dead_subscriber_is_pruned_without_disturbing_others(self):
        alive = await self.hub.subscribe("s1")
        dead = await self.hub.subscribe("s1")
        await _next(alive)
        dead.close()

        delivered = await self.hub.publish("s1", self.store.get("s1"), "vote-submitted")

        self.assertEqual(delivered, 1)
        self.assertEqual(self.hub.subscriber_count("s1"), 1)
        self.assertEqual((await _next(alive)).type, "vote-submitted")

    async def test_full_subscriber_is_pruned(self):
        hub = BroadcastHub(self.store, heartbeat_interval=60, queue_size=1)
        slow = await hub.subscribe("s1")

        # The init event still fills the one-slot queue.
        delivered = await hub.publish("s1", self.store.get("s1"), "phase-voting")

        self.assertEqual(delivered, 0)
        self.assertEqual(hub.subscriber_count("s1"), 0)
        self.assertTrue(slow.closed)
        await hub.close()

    async def test_unsubscribe_ends_iteration(self):
        sub = await self.hub.subscribe("s1")
        await _next(sub)

        await self.hub.unsubscribe(sub)
        await self.hub.unsubscribe(sub)

        self.assertEqual(self.hub.subscriber_count("s1"), 0)
        self.assertEqual([event async for event in sub], [])

    async def test_heartbeat_repeats_until_unsubscribed(self):
        hub = BroadcastHub(self.store, heartbeat_interval=0.01)
        sub = await hub.subscribe("s1")
        await _next(sub)

        self.assertEqual((await _next(sub)).type, HEARTBEAT)
        self.assertEqual((await _next(sub)).type, HEARTBEAT)

        await hub.unsubscribe(sub)
        await asyncio.sleep(0.05)
        self.assertTrue(sub._heartbeat.done())
        await hub.close()

    async def test_drop_session_closes_its_subscribers(self):
        sub = await self.hub.subscribe("s1")
        await _next(sub)

        self.assertEqual(await self.hub.drop_session("s1"), 1)

        self.assertTrue(sub.closed)
        self.assertEqual(self.hub.subscriber_count("s1"), 0)
        self.assertEqual([event async for event in sub], [])


class FormatSseTests(IsolatedAsyncioTestCase):
    async def test_heartbeat_is_a_comment_frame(self):
        self.assertEqual(format_sse(Event(type=HEARTBEAT)), ": heartbeat\n\n")

    async def test_data_frame_carries_session_json(self):
        frame = format_sse(Event(type="game-started", session=_session()))

        self.assertTrue(frame.startswith("data: "))
        self.assertTrue(frame.endswith("\n\n"))
        payload = json.loads(frame[len("data: "):])
        self.assertEqual(payload["type"], "game-started")
        self.assertEqual(payload["session"]["code"], "ABCD")
        self.assertEqual(payload["session"]["currentPhase"], "lobby")
        self.assertEqual(payload["session"]["hostId"], "host")
        self.assertNotIn("current_phase", payload["session"])
        self.assertIn("timestamp", payload)
