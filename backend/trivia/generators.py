"""
AI-backed question sources.

Both generators ask a hosted model for a JSON object ``{"questions": [...]}``
in the camelCase shape of :mod:`models`, validate every entry, and give up
with ``QuestionSourceUnavailable`` on any transport or parsing failure so the
chain can fall through to the next source.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
import random
import urllib.error
import urllib.request
from abc import abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .errors import QuestionSourceUnavailable
from .models import Question, parse_question
from .questions import ChainedQuestionSource, LocalQuestionBank, QuestionSource
from .settings import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a trivia question generator. Generate high-quality, interesting trivia questions "
    "with accurate answers and explanations. Respond with ONLY valid JSON, no other text."
)


def question_mix(count: int) -> Dict[str, int]:
    """Split ``count`` into per-type targets: 40% MC, 25% T/F, 30% more-or-less, rest numerical."""
    multiple_choice = int(count * 0.4)
    true_false = int(count * 0.25)
    more_or_less = int(count * 0.3)
    numerical = count - multiple_choice - true_false - more_or_less
    return {
        "multiple-choice": multiple_choice,
        "true-false": true_false,
        "more-or-less": more_or_less,
        "numerical": numerical,
    }


def build_prompt(
    count: int,
    categories: Optional[Sequence[str]] = None,
    difficulties: Optional[Sequence[str]] = None,
) -> str:
    mix = question_mix(count)

    if categories:
        category_str = f"Focus on these categories: {', '.join(categories)}. "
    else:
        category_str = "Use diverse categories like Science, History, Geography, Biology, Physics, Chemistry, etc. "

    if difficulties:
        difficulty_str = f"Difficulty levels: {', '.join(difficulties)}. "
    else:
        difficulty_str = "Mix difficulty levels (easy, medium, hard). "

    return f"""Generate exactly {count} trivia questions in JSON format.

{category_str}{difficulty_str}

Generate:
- {mix["multiple-choice"]} multiple-choice questions (4 options each)
- {mix["true-false"]} true/false questions
- {mix["more-or-less"]} "more or less" comparison questions (comparing two things)
- {mix["numerical"]} numerical questions (with acceptable range)

Return a JSON object with this exact structure:
{{
  "questions": [
    {{"id": "unique_id", "type": "multiple-choice", "text": "Question text?", "category": "Category",
      "difficulty": "easy|medium|hard", "options": ["A", "B", "C", "D"], "correctAnswer": 2,
      "explanation": "Detailed explanation"}},
    {{"id": "unique_id", "type": "true-false", "text": "Statement to evaluate", "category": "Category",
      "difficulty": "easy|medium|hard", "correctAnswer": true, "explanation": "Detailed explanation"}},
    {{"id": "unique_id", "type": "more-or-less", "text": "Which is more: X or Y?", "category": "Category",
      "difficulty": "easy|medium|hard", "option1": "First thing", "option2": "Second thing",
      "correctAnswer": 0, "explanation": "Detailed explanation with actual values"}},
    {{"id": "unique_id", "type": "numerical", "text": "Question requiring a number answer?",
      "category": "Category", "difficulty": "easy|medium|hard", "correctAnswer": 42, "unit": "km",
      "acceptableRange": 5, "explanation": "Detailed explanation"}}
  ]
}}

Important:
- Ensure all answers are factually correct
- Use unique IDs for each question
- For multiple-choice, correctAnswer is the index (0-3)
- For more-or-less, correctAnswer is 0 or 1 (for option1 or option2)
- For numerical, include acceptableRange (how close answer needs to be)
- Interleave question types throughout the list, don't group all MCQs together"""


def parse_questions(content: str, source: str) -> List[Question]:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise QuestionSourceUnavailable(f"{source} returned invalid JSON") from exc

    raw = payload.get("questions") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        raise QuestionSourceUnavailable(f"{source} response has no question list")

    questions: List[Question] = []
    for item in raw:
        try:
            questions.append(parse_question(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed question from %s: %s", source, exc.errors()[:1])

    if not questions:
        raise QuestionSourceUnavailable(f"{source} returned no usable questions")
    return questions


class RemoteQuestionSource(QuestionSource):
    url: str = ""

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 20.0, rng: Optional[random.Random] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._rng = rng or random.Random()

    @abstractmethod
    def _request(self, prompt: str) -> urllib.request.Request:
        """Build the provider request for ``prompt``."""

    @abstractmethod
    def _extract_content(self, data: Dict[str, Any]) -> Optional[str]:
        """Pull the generated text out of a provider response."""

    def _post(self, req: urllib.request.Request) -> Dict[str, Any]:
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            raise QuestionSourceUnavailable(f"{self.name} API error: {exc.code} - {body}") from exc
        except urllib.error.URLError as exc:
            raise QuestionSourceUnavailable(f"{self.name} unreachable: {exc.reason}") from exc
        except (OSError, http.client.HTTPException, ValueError) as exc:
            # Dropped connections, short reads, socket timeouts and undecodable bodies.
            raise QuestionSourceUnavailable(f"{self.name} request failed: {exc}") from exc

    async def generate(self, count, categories=None, difficulties=None):
        if not self.api_key:
            raise QuestionSourceUnavailable(f"{self.name} API key not configured")

        logger.info("Generating %d questions with %s (%s)", count, self.name, self.model)
        req = self._request(build_prompt(count, categories, difficulties))
        data = await asyncio.to_thread(self._post, req)

        content = self._extract_content(data)
        if not content:
            raise QuestionSourceUnavailable(f"No content in {self.name} response")

        questions = parse_questions(content, self.name)
        self._rng.shuffle(questions)
        logger.info("Generated %d questions with %s", len(questions), self.name)
        return questions[:count]


class OpenAIQuestionSource(RemoteQuestionSource):
    name = "openai"
    url = "https://api.openai.com/v1/chat/completions"

    def _request(self, prompt):
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.8,
            "response_format": {"type": "json_object"},
        }
        return urllib.request.Request(
            self.url,
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            method="POST",
        )

    def _extract_content(self, data):
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None


class GeminiQuestionSource(RemoteQuestionSource):
    name = "gemini"
    url = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def _request(self, prompt):
        body = {
            "contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{prompt}"}]}],
            "generationConfig": {
                "temperature": 0.8,
                "topK": 40,
                "topP": 0.95,
                "maxOutputTokens": 8192,
                "responseMimeType": "application/json",
            },
        }
        return urllib.request.Request(
            self.url.format(model=self.model),
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key or ""},
            method="POST",
        )

    def _extract_content(self, data):
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None


def build_question_source(settings: Settings) -> QuestionSource:
    """OpenAI, then Gemini, then the local bank; remote sources only when keyed."""
    sources: List[QuestionSource] = []
    if settings.OPENAI_API_KEY:
        sources.append(
            OpenAIQuestionSource(settings.OPENAI_API_KEY, settings.OPENAI_MODEL, settings.QUESTION_SOURCE_TIMEOUT_SECONDS)
        )
    if settings.GOOGLE_API_KEY:
        sources.append(
            GeminiQuestionSource(settings.GOOGLE_API_KEY, settings.GEMINI_MODEL, settings.QUESTION_SOURCE_TIMEOUT_SECONDS)
        )
    sources.append(LocalQuestionBank())
    # The chain timeout is a backstop over the per-request socket timeout.
    return ChainedQuestionSource(sources, timeout=settings.QUESTION_SOURCE_TIMEOUT_SECONDS + 5)
