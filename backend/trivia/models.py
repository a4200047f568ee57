from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .utils import now_ts

MAX_PLAYERS = 6
MIN_PLAYERS = 2
TOKEN_VALUES = tuple(range(1, 11))

PLAYER_COLORS = [
    "#EF4444",  # red
    "#3B82F6",  # blue
    "#10B981",  # green
    "#F59E0B",  # amber
    "#8B5CF6",  # purple
    "#EC4899",  # pink
]

Difficulty = Literal["easy", "medium", "hard"]
Answer = Union[bool, int, float]


class Phase(str, Enum):
    LOBBY = "lobby"
    QUESTION = "question"
    VOTING = "voting"
    REVEAL = "reveal"
    RESULTS = "results"


class _WireModel(BaseModel):
    # Clients speak camelCase ("currentPhase"); snake_case input is accepted as well.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Player(_WireModel):
    id: str
    name: str
    color: str
    score: int = Field(default=0, ge=0)
    available_tokens: List[int] = Field(default_factory=lambda: list(TOKEN_VALUES))
    used_tokens: List[int] = Field(default_factory=list)
    is_host: bool = False
    is_connected: bool = True


class _QuestionBase(_WireModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    category: str = "General"
    difficulty: Difficulty = "medium"
    explanation: str = ""


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple-choice"] = "multiple-choice"
    options: List[str] = Field(min_length=4, max_length=4)
    correct_answer: int = Field(ge=0, le=3)


class TrueFalseQuestion(_QuestionBase):
    type: Literal["true-false"] = "true-false"
    correct_answer: bool


class MoreOrLessQuestion(_QuestionBase):
    type: Literal["more-or-less"] = "more-or-less"
    option1: str
    option2: str
    correct_answer: int = Field(ge=0, le=1)


class NumericalQuestion(_QuestionBase):
    type: Literal["numerical"] = "numerical"
    correct_answer: float
    unit: Optional[str] = None
    acceptable_range: Optional[float] = Field(default=None, ge=0)


Question = Annotated[
    Union[MultipleChoiceQuestion, TrueFalseQuestion, MoreOrLessQuestion, NumericalQuestion],
    Field(discriminator="type"),
]

_question_adapter: TypeAdapter[Question] = TypeAdapter(Question)


def parse_question(data: Any) -> Question:
    """Validate a raw question record.

    Records written before question types existed carry no ``type`` and are
    always multiple-choice.
    """
    if isinstance(data, dict) and "type" not in data:
        data = {**data, "type": "multiple-choice"}
    return _question_adapter.validate_python(data)


class PlayerVote(_WireModel):
    player_id: str
    answer: Answer
    token: int = Field(ge=1, le=10)
    submitted_at: float = Field(default_factory=now_ts)


# Phases: lobby -> question -> voting -> reveal -> question ... -> results
class GameSession(_WireModel):
    id: str
    code: str
    host_id: str
    players: List[Player] = Field(default_factory=list)
    current_phase: Phase = Phase.LOBBY
    current_round: int = 0
    total_rounds: int = 10
    current_question: Optional[Question] = None
    votes: List[PlayerVote] = Field(default_factory=list)
    question_history: List[Question] = Field(default_factory=list)
    created_at: float = Field(default_factory=now_ts)
    last_activity: float = Field(default_factory=now_ts)

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def touch(self) -> None:
        self.last_activity = now_ts()
