from __future__ import annotations

import logging
import math
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Sequence, Union

from .errors import (
    InvalidInput,
    InvalidState,
    PlayerNotFound,
    QuestionSourceUnavailable,
    ResourceExhausted,
    SessionFull,
    SessionNotFound,
    TokenUnavailable,
)
from .models import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    PLAYER_COLORS,
    Answer,
    Difficulty,
    GameSession,
    MoreOrLessQuestion,
    MultipleChoiceQuestion,
    NumericalQuestion,
    Phase,
    Player,
    PlayerVote,
    Question,
    TrueFalseQuestion,
)
from .questions import QuestionSource
from .store import SessionStore
from .utils import generate_game_code, generate_player_id, generate_session_id, now_ts

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 20

# Transitions change_phase may apply directly. Entering reveal goes through
# settlement and leaving reveal for the next question goes through next_round.
PHASE_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.QUESTION: frozenset({Phase.VOTING}),
    Phase.REVEAL: frozenset({Phase.RESULTS}),
}


class CreatedSession(NamedTuple):
    session: GameSession
    host_id: str
    code: str


class JoinedSession(NamedTuple):
    session: GameSession
    player_id: str


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_answer(question: Optional[Question], answer: object) -> Answer:
    """Coerce a submitted answer to the shape the current question expects.

    True/false questions also accept the legacy ``1``/``0`` encoding; index
    questions only accept whole numbers within their option range.
    """
    if question is None:
        raise InvalidState("No active question")
    if not isinstance(answer, (bool, int, float)):
        raise InvalidInput("Answer must be a number or a boolean")
    if isinstance(answer, float) and not math.isfinite(answer):
        raise InvalidInput("Answer must be a finite number")

    if isinstance(question, TrueFalseQuestion):
        if isinstance(answer, bool):
            return answer
        if answer in (0, 1):
            return bool(answer)
        raise InvalidInput("True/false answers must be true, false, 1 or 0")

    if isinstance(answer, bool):
        raise InvalidInput("This question does not take a true/false answer")

    if isinstance(question, NumericalQuestion):
        return answer

    last_index = len(question.options) - 1 if isinstance(question, MultipleChoiceQuestion) else 1
    if answer != int(answer) or not 0 <= answer <= last_index:
        raise InvalidInput(f"Answer must be an option index between 0 and {last_index}")
    return int(answer)


def is_answer_correct(question: Question, answer: object) -> bool:
    if isinstance(question, TrueFalseQuestion):
        if isinstance(answer, bool):
            return answer == question.correct_answer
        if answer in (0, 1):
            return bool(answer) == question.correct_answer
        return False

    if not _is_number(answer):
        return False

    if isinstance(question, (MultipleChoiceQuestion, MoreOrLessQuestion)):
        return answer == question.correct_answer

    if isinstance(question, NumericalQuestion):
        if question.acceptable_range is not None:
            tolerance = question.acceptable_range
        else:
            tolerance = abs(question.correct_answer) * 0.1
        return abs(answer - question.correct_answer) <= tolerance

    raise TypeError(f"Unknown question type: {type(question).__name__}")


def _coerce_phase(target: Union[Phase, str]) -> Phase:
    try:
        return Phase(target)
    except ValueError as exc:
        raise InvalidInput(f"Unknown phase: {target}") from exc


def _snapshot(session: GameSession) -> GameSession:
    return session.model_copy(deep=True)


class GameEngine:
    """Phase state machine for trivia sessions.

    Every mutation runs inside ``SessionStore.with_lock`` and every operation
    returns a deep-copied snapshot taken under the same lock, ready to be
    published to subscribers.
    """

    def __init__(self, store: SessionStore, question_source: QuestionSource, total_rounds: int = 10):
        self.store = store
        self.question_source = question_source
        self.total_rounds = total_rounds

    async def get_session(self, session_id: str) -> GameSession:
        return self.store.get(session_id)

    async def get_session_by_code(self, code: str) -> GameSession:
        return self.store.get_by_code(code)

    async def create_session(self, host_name: str) -> CreatedSession:
        name = (host_name or "").strip()
        if not name:
            raise InvalidInput("Host name is required")

        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_game_code()
            if not self.store.has_code(code):
                break
        else:
            raise ResourceExhausted("Could not allocate a free game code")

        host_id = generate_player_id()
        host = Player(id=host_id, name=name, color=PLAYER_COLORS[0], is_host=True)
        session = GameSession(
            id=generate_session_id(),
            code=code,
            host_id=host_id,
            players=[host],
            total_rounds=self.total_rounds,
        )
        self.store.insert(session)

        logger.info("Session created: %s, code: %s, host: %s", session.id, code, host_id)
        return CreatedSession(session=self.store.get(session.id), host_id=host_id, code=code)

    async def join_session(self, code: str, player_name: str) -> JoinedSession:
        name = (player_name or "").strip()
        if not name:
            raise InvalidInput("Player name is required")

        session_id = self.store.resolve_code(code)

        def _join(s: GameSession):
            if s.current_phase != Phase.LOBBY:
                raise InvalidState("Game already started")
            if len(s.players) >= MAX_PLAYERS:
                raise SessionFull(MAX_PLAYERS)

            color = PLAYER_COLORS[len(s.players) % len(PLAYER_COLORS)]
            player = Player(id=generate_player_id(), name=name, color=color)
            s.players.append(player)
            s.touch()
            return JoinedSession(session=_snapshot(s), player_id=player.id)

        joined = await self.store.with_lock(session_id, _join)
        logger.info(
            "Player joined: %s (%s), session: %s, total players: %d",
            name, joined.player_id, session_id, len(joined.session.players),
        )
        return joined

    async def start_game(
        self,
        session_id: str,
        categories: Optional[Sequence[str]] = None,
        difficulties: Optional[Sequence[Difficulty]] = None,
    ) -> GameSession:
        def _check(s: GameSession) -> int:
            if s.current_phase != Phase.LOBBY:
                raise InvalidState("Game already started")
            if len(s.players) < MIN_PLAYERS:
                raise InvalidState(f"Cannot start game - need at least {MIN_PLAYERS} players")
            return s.total_rounds

        rounds = await self.store.with_lock(session_id, _check)

        # Fetching may hit the network, so the session stays unlocked meanwhile.
        questions: List[Question] = list(await self.question_source.generate(rounds, categories, difficulties))
        if not questions:
            raise QuestionSourceUnavailable("No questions available")

        def _commit(s: GameSession) -> GameSession:
            _check(s)
            history = questions[: s.total_rounds]
            s.total_rounds = len(history)
            s.question_history = history
            s.current_round = 1
            s.current_question = history[0]
            s.votes = []
            s.current_phase = Phase.QUESTION
            s.touch()
            return _snapshot(s)

        session = await self.store.with_lock(session_id, _commit)
        logger.info(
            "Game started: %s, players: %d, rounds: %d",
            session_id, len(session.players), session.total_rounds,
        )
        return session

    async def change_phase(self, session_id: str, target: Union[Phase, str]) -> GameSession:
        phase = _coerce_phase(target)

        def _change(s: GameSession) -> GameSession:
            if s.current_phase == phase:
                return _snapshot(s)
            if phase not in PHASE_TRANSITIONS.get(s.current_phase, frozenset()):
                raise InvalidState(f"Cannot change phase from {s.current_phase.value} to {phase.value}")
            s.current_phase = phase
            if phase == Phase.RESULTS:
                s.current_question = None
                s.votes = []
            s.touch()
            return _snapshot(s)

        session = await self.store.with_lock(session_id, _change)
        logger.info("Session %s phase: %s", session_id, session.current_phase.value)
        return session

    async def request_phase(self, session_id: str, target: Union[Phase, str]) -> GameSession:
        """Apply a host phase request using the operation that owns that transition."""
        phase = _coerce_phase(target)
        if phase == Phase.REVEAL:
            return await self.process_round_results(session_id)
        if phase == Phase.QUESTION:
            return await self.next_round(session_id)
        return await self.change_phase(session_id, phase)

    async def submit_vote(self, session_id: str, player_id: str, answer: object, token: int) -> GameSession:
        if isinstance(token, bool) or not isinstance(token, int):
            raise InvalidInput("Token must be a whole number between 1 and 10")

        def _vote(s: GameSession) -> GameSession:
            if s.current_phase != Phase.VOTING:
                raise InvalidState("Votes are only accepted during the voting phase")

            player = s.get_player(player_id)
            if player is None:
                raise PlayerNotFound(player_id)
            if token not in player.available_tokens:
                raise TokenUnavailable(token)

            vote = PlayerVote(
                player_id=player_id,
                answer=normalize_answer(s.current_question, answer),
                token=token,
                submitted_at=now_ts(),
            )
            for idx, existing in enumerate(s.votes):
                if existing.player_id == player_id:
                    s.votes[idx] = vote
                    break
            else:
                s.votes.append(vote)
            s.touch()

            # Settling in the same critical section as the upsert means exactly
            # one submission observes the final vote.
            if len(s.votes) == len(s.players):
                self._settle(s)
            return _snapshot(s)

        session = await self.store.with_lock(session_id, _vote)
        logger.info(
            "Vote from %s in %s (%d/%d), phase: %s",
            player_id, session_id, len(session.votes), len(session.players), session.current_phase.value,
        )
        return session

    async def process_round_results(self, session_id: str) -> GameSession:
        def _process(s: GameSession) -> GameSession:
            if s.current_phase == Phase.REVEAL:
                s.touch()
                return _snapshot(s)
            if s.current_phase != Phase.VOTING:
                raise InvalidState(f"Cannot reveal results during the {s.current_phase.value} phase")
            self._settle(s)
            return _snapshot(s)

        return await self.store.with_lock(session_id, _process)

    def _settle(self, s: GameSession) -> None:
        """Score every vote of the round and retire the tokens played.

        Only called while the phase is voting, and it leaves the phase at
        reveal, so a round is settled at most once.
        """
        if s.current_question is None:
            raise InvalidState("No active question")

        s.current_phase = Phase.REVEAL
        question = s.current_question

        for vote in s.votes:
            player = s.get_player(vote.player_id)
            if player is None:
                continue
            if vote.token not in player.available_tokens:
                logger.error("Token %d of %s already spent; vote ignored", vote.token, player.id)
                continue

            player.available_tokens.remove(vote.token)
            if is_answer_correct(question, vote.answer):
                player.score += vote.token
                player.used_tokens.append(vote.token)

        s.touch()
        logger.info("Round %d settled for %s", s.current_round, s.id)

    async def next_round(self, session_id: str) -> GameSession:
        def _next(s: GameSession) -> GameSession:
            if s.current_phase != Phase.REVEAL:
                raise InvalidState(f"Cannot advance the round during the {s.current_phase.value} phase")

            s.votes = []
            if s.current_round >= s.total_rounds:
                s.current_phase = Phase.RESULTS
                s.current_question = None
            else:
                s.current_round += 1
                s.current_question = s.question_history[s.current_round - 1]
                s.current_phase = Phase.QUESTION
            s.touch()
            return _snapshot(s)

        session = await self.store.with_lock(session_id, _next)
        logger.info(
            "Session %s advanced: %s, round %d/%d",
            session_id, session.current_phase.value, session.current_round, session.total_rounds,
        )
        return session

    async def update_player_connection(self, session_id: str, player_id: str, connected: bool) -> Optional[GameSession]:
        def _update(s: GameSession) -> Optional[GameSession]:
            player = s.get_player(player_id)
            if player is None:
                return None
            player.is_connected = connected
            s.touch()
            return _snapshot(s)

        try:
            return await self.store.with_lock(session_id, _update)
        except SessionNotFound:
            return None

    async def end_session(self, session_id: str) -> bool:
        removed = await self.store.remove(session_id)
        if removed:
            logger.info("Session ended: %s", session_id)
        return removed
