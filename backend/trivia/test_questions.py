from __future__ import annotations

import asyncio
import http.client
import io
import json
import random
import socket
import urllib.error
from unittest import IsolatedAsyncioTestCase, TestCase, mock

from . import generators
from .errors import QuestionSourceUnavailable
from .generators import (
    GeminiQuestionSource,
    OpenAIQuestionSource,
    RemoteQuestionSource,
    build_question_source,
    parse_questions,
    question_mix,
)
from .models import MultipleChoiceQuestion, NumericalQuestion, TrueFalseQuestion, parse_question
from .question_bank import QUESTION_BANK
from .questions import ChainedQuestionSource, LocalQuestionBank, QuestionSource
from .settings import Settings


class _StubSource(QuestionSource):
    def __init__(self, name, questions=None, error=None, delay=0.0):
        self.name = name
        self.questions = questions or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def generate(self, count, categories=None, difficulties=None):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.questions[:count]


_GENERATED = {
    "questions": [
        {
            "id": "g1",
            "type": "multiple-choice",
            "text": "Largest planet?",
            "category": "Astronomy",
            "difficulty": "easy",
            "options": ["Mars", "Jupiter", "Venus", "Earth"],
            "correctAnswer": 1,
            "explanation": "Jupiter.",
        },
        {
            "id": "g2",
            "type": "numerical",
            "text": "Boiling point of water in °C?",
            "category": "Physics",
            "difficulty": "easy",
            "correctAnswer": 100,
            "unit": "°C",
            "acceptableRange": 2,
            "explanation": "At sea level.",
        },
        {"id": "broken", "type": "multiple-choice", "text": "No options?", "correctAnswer": 0},
    ]
}


class QuestionBankTests(TestCase):
    def test_bank_has_enough_questions_for_a_default_game(self):
        self.assertGreaterEqual(len(QUESTION_BANK), 10)
        self.assertEqual(len({q.id for q in QUESTION_BANK}), len(QUESTION_BANK))

    def test_legacy_record_without_type_is_multiple_choice(self):
        q = parse_question(
            {"id": "old", "text": "?", "options": ["a", "b", "c", "d"], "correctAnswer": 3}
        )

        self.assertIsInstance(q, MultipleChoiceQuestion)
        self.assertEqual(q.correct_answer, 3)

    def test_parse_question_dispatches_on_type(self):
        q = parse_question({"id": "t", "type": "true-false", "text": "?", "correct_answer": False})

        self.assertIsInstance(q, TrueFalseQuestion)
        self.assertFalse(q.correct_answer)


class LocalQuestionBankTests(IsolatedAsyncioTestCase):
    async def test_returns_distinct_questions(self):
        bank = LocalQuestionBank(rng=random.Random(7))

        questions = await bank.generate(10)

        self.assertEqual(len(questions), 10)
        self.assertEqual(len({q.id for q in questions}), 10)

    async def test_caps_at_bank_size(self):
        bank = LocalQuestionBank(QUESTION_BANK[:3])
        self.assertEqual(len(await bank.generate(10)), 3)

    async def test_filters_by_category_and_difficulty(self):
        bank = LocalQuestionBank()

        questions = await bank.generate(50, categories=["astronomy"], difficulties=["hard"])

        self.assertTrue(questions)
        for q in questions:
            self.assertEqual(q.category, "Astronomy")
            self.assertEqual(q.difficulty, "hard")

    async def test_unmatched_filter_falls_back_to_whole_bank(self):
        bank = LocalQuestionBank(QUESTION_BANK[:5])

        questions = await bank.generate(5, categories=["Underwater Basket Weaving"])

        self.assertEqual(len(questions), 5)

    async def test_empty_bank_is_unavailable(self):
        with self.assertRaises(QuestionSourceUnavailable):
            await LocalQuestionBank([]).generate(5)


class ChainedQuestionSourceTests(IsolatedAsyncioTestCase):
    async def test_falls_through_to_first_working_source(self):
        failing = _StubSource("primary", error=QuestionSourceUnavailable("down"))
        empty = _StubSource("secondary")
        local = _StubSource("local", questions=QUESTION_BANK[:4])

        questions = await ChainedQuestionSource([failing, empty, local]).generate(3)

        self.assertEqual(len(questions), 3)
        self.assertEqual((failing.calls, empty.calls, local.calls), (1, 1, 1))

    async def test_stops_at_first_success(self):
        primary = _StubSource("primary", questions=QUESTION_BANK[:2])
        local = _StubSource("local", questions=QUESTION_BANK[2:4])

        questions = await ChainedQuestionSource([primary, local]).generate(2)

        self.assertEqual(questions, QUESTION_BANK[:2])
        self.assertEqual(local.calls, 0)

    async def test_slow_source_times_out(self):
        slow = _StubSource("slow", questions=QUESTION_BANK[:2], delay=1)
        local = _StubSource("local", questions=QUESTION_BANK[2:4])

        questions = await ChainedQuestionSource([slow, local], timeout=0.01).generate(2)

        self.assertEqual(questions, QUESTION_BANK[2:4])

    async def test_all_sources_failing(self):
        chain = ChainedQuestionSource(
            [_StubSource("a", error=QuestionSourceUnavailable("x")), _StubSource("b")]
        )
        with self.assertRaises(QuestionSourceUnavailable):
            await chain.generate(5)

    async def test_unexpected_failure_falls_through(self):
        broken = _StubSource("broken", error=RuntimeError("bad payload shape"))
        local = _StubSource("local", questions=QUESTION_BANK[:3])

        with self.assertLogs("backend.trivia.questions", level="ERROR"):
            questions = await ChainedQuestionSource([broken, local]).generate(3)

        self.assertEqual(questions, QUESTION_BANK[:3])

    def test_needs_a_source(self):
        with self.assertRaises(ValueError):
            ChainedQuestionSource([])


class ParseQuestionsTests(TestCase):
    def test_skips_invalid_entries(self):
        questions = parse_questions(json.dumps(_GENERATED), "test")

        self.assertEqual([q.id for q in questions], ["g1", "g2"])
        self.assertIsInstance(questions[1], NumericalQuestion)
        self.assertEqual(questions[1].acceptable_range, 2)

    def test_rejects_non_json(self):
        with self.assertRaises(QuestionSourceUnavailable):
            parse_questions("here are some questions!", "test")

    def test_rejects_missing_list(self):
        with self.assertRaises(QuestionSourceUnavailable):
            parse_questions(json.dumps({"items": []}), "test")

    def test_question_mix_adds_up(self):
        mix = question_mix(10)

        self.assertEqual(sum(mix.values()), 10)
        self.assertEqual(mix["multiple-choice"], 4)
        self.assertEqual(mix["true-false"], 2)
        self.assertEqual(mix["more-or-less"], 3)
        self.assertEqual(mix["numerical"], 1)


class RemoteQuestionSourceTests(IsolatedAsyncioTestCase):
    def test_provider_hooks_are_required(self):
        with self.assertRaises(TypeError):
            RemoteQuestionSource("sk-test", "some-model")

    async def test_missing_key_is_unavailable(self):
        with self.assertRaises(QuestionSourceUnavailable):
            await OpenAIQuestionSource(None, "gpt-4o-mini").generate(5)

    async def test_openai_response_is_parsed(self):
        source = OpenAIQuestionSource("sk-test", "gpt-4o-mini", rng=random.Random(1))
        response = {"choices": [{"message": {"content": json.dumps(_GENERATED)}}]}

        with mock.patch.object(source, "_post", return_value=response) as post:
            questions = await source.generate(5)

        self.assertEqual(sorted(q.id for q in questions), ["g1", "g2"])
        req = post.call_args.args[0]
        self.assertEqual(req.full_url, OpenAIQuestionSource.url)
        self.assertEqual(req.get_header("Authorization"), "Bearer sk-test")
        body = json.loads(req.data)
        self.assertEqual(body["model"], "gpt-4o-mini")
        self.assertIn("Generate exactly 5 trivia questions", body["messages"][1]["content"])

    async def test_gemini_response_is_parsed(self):
        source = GeminiQuestionSource("g-key", "gemini-2.5-flash")
        response = {"candidates": [{"content": {"parts": [{"text": json.dumps(_GENERATED)}]}}]}

        with mock.patch.object(source, "_post", return_value=response) as post:
            questions = await source.generate(1)

        self.assertEqual(len(questions), 1)
        req = post.call_args.args[0]
        self.assertIn("gemini-2.5-flash:generateContent", req.full_url)

    async def test_empty_completion_is_unavailable(self):
        source = GeminiQuestionSource("g-key", "gemini-2.5-flash")

        with mock.patch.object(source, "_post", return_value={"candidates": []}):
            with self.assertRaises(QuestionSourceUnavailable):
                await source.generate(3)

    async def test_http_error_is_unavailable(self):
        source = OpenAIQuestionSource("sk-test", "gpt-4o-mini")
        error = urllib.error.HTTPError(source.url, 429, "Too Many Requests", {}, io.BytesIO(b"slow down"))

        with mock.patch.object(generators.urllib.request, "urlopen", side_effect=error):
            with self.assertRaises(QuestionSourceUnavailable) as ctx:
                await source.generate(3)
        self.assertIn("429", str(ctx.exception))

    async def test_network_error_is_unavailable(self):
        source = OpenAIQuestionSource("sk-test", "gpt-4o-mini")

        with mock.patch.object(generators.urllib.request, "urlopen", side_effect=urllib.error.URLError("no route")):
            with self.assertRaises(QuestionSourceUnavailable):
                await source.generate(3)

    async def test_dropped_connections_are_unavailable(self):
        source = OpenAIQuestionSource("sk-test", "gpt-4o-mini")
        failures = [
            ConnectionResetError("reset by peer"),
            http.client.IncompleteRead(b"partial"),
            http.client.RemoteDisconnected("closed"),
            socket.timeout("timed out"),
        ]

        for failure in failures:
            with self.subTest(failure=type(failure).__name__):
                with mock.patch.object(generators.urllib.request, "urlopen", side_effect=failure):
                    with self.assertRaises(QuestionSourceUnavailable):
                        await source.generate(3)

    async def test_undecodable_body_is_unavailable(self):
        source = OpenAIQuestionSource("sk-test", "gpt-4o-mini")
        resp = mock.MagicMock()
        resp.__enter__.return_value.read.return_value = b"\xff\xfe not utf-8"

        with mock.patch.object(generators.urllib.request, "urlopen", return_value=resp):
            with self.assertRaises(QuestionSourceUnavailable):
                await source.generate(3)

    async def test_chain_falls_back_to_local_bank_on_network_failure(self):
        chain = ChainedQuestionSource([OpenAIQuestionSource("sk-test", "gpt-4o-mini"), LocalQuestionBank()])
        failures = [
            ConnectionResetError("reset by peer"),
            http.client.IncompleteRead(b"partial"),
            http.client.RemoteDisconnected("closed"),
        ]

        for failure in failures:
            with self.subTest(failure=type(failure).__name__):
                with mock.patch.object(generators.urllib.request, "urlopen", side_effect=failure):
                    questions = await chain.generate(3)
                self.assertEqual(len(questions), 3)


class BuildQuestionSourceTests(TestCase):
    def test_local_only_without_keys(self):
        chain = build_question_source(Settings(OPENAI_API_KEY=None, GOOGLE_API_KEY=None))

        self.assertIsInstance(chain, ChainedQuestionSource)
        self.assertEqual([s.name for s in chain.sources], ["local"])

    def test_remote_sources_come_first(self):
        chain = build_question_source(Settings(OPENAI_API_KEY="sk", GOOGLE_API_KEY="g"))

        self.assertEqual([s.name for s in chain.sources], ["openai", "gemini", "local"])
