from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .errors import QuestionSourceUnavailable
from .models import Difficulty, Question
from .question_bank import QUESTION_BANK

logger = logging.getLogger(__name__)


class QuestionSource(ABC):
    """Supplier of questions for a new game."""

    name = "source"

    @abstractmethod
    async def generate(
        self,
        count: int,
        categories: Optional[Sequence[str]] = None,
        difficulties: Optional[Sequence[Difficulty]] = None,
    ) -> List[Question]:
        """Return up to ``count`` questions or raise ``QuestionSourceUnavailable``."""


class LocalQuestionBank(QuestionSource):
    name = "local"

    def __init__(self, questions: Optional[Sequence[Question]] = None, rng: Optional[random.Random] = None):
        self.questions = list(QUESTION_BANK if questions is None else questions)
        self._rng = rng or random.Random()

    async def generate(self, count, categories=None, difficulties=None):
        pool = self.questions
        if categories:
            wanted = {c.lower() for c in categories}
            pool = [q for q in pool if q.category.lower() in wanted]
        if difficulties:
            pool = [q for q in pool if q.difficulty in difficulties]
        if not pool:
            # A filter that matches nothing should not sink the whole game.
            pool = self.questions
        if not pool:
            raise QuestionSourceUnavailable("Local question bank is empty")

        return self._rng.sample(pool, min(count, len(pool)))


class ChainedQuestionSource(QuestionSource):
    """Try each source in order and return the first non-empty result."""

    name = "chain"

    def __init__(self, sources: Sequence[QuestionSource], timeout: Optional[float] = None):
        if not sources:
            raise ValueError("ChainedQuestionSource needs at least one source")
        self.sources = list(sources)
        self.timeout = timeout

    async def generate(self, count, categories=None, difficulties=None):
        for source in self.sources:
            try:
                questions = await asyncio.wait_for(
                    source.generate(count, categories, difficulties), timeout=self.timeout
                )
            except QuestionSourceUnavailable as exc:
                logger.warning("Question source %s unavailable: %s", source.name, exc)
                continue
            except asyncio.TimeoutError:
                logger.warning("Question source %s timed out after %ss", source.name, self.timeout)
                continue
            except Exception:
                logger.exception("Question source %s failed unexpectedly", source.name)
                continue

            if questions:
                logger.info("Using %d questions from %s", len(questions), source.name)
                return questions
            logger.warning("Question source %s returned no questions", source.name)

        raise QuestionSourceUnavailable("All question sources failed")
