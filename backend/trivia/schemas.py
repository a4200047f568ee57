
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional, Union

from .models import Difficulty, GameSession


class _Payload(BaseModel):
    # camelCase on the wire in both directions; snake_case input works as well.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateGameIn(_Payload):
    host_name: str = ""


class JoinGameIn(_Payload):
    code: str = ""
    player_name: str = ""


class StartGameIn(_Payload):
    session_id: str
    categories: Optional[List[str]] = None
    difficulties: Optional[List[Difficulty]] = None


class PhaseIn(_Payload):
    session_id: str
    phase: str


class VoteIn(_Payload):
    session_id: str
    player_id: str
    answer: Union[bool, int, float]
    token: int


class CreateGameOut(_Payload):
    success: bool = True
    session_id: str
    code: str
    host_id: str


class JoinGameOut(_Payload):
    success: bool = True
    session_id: str
    player_id: str


class SessionOut(_Payload):
    success: bool = True
    session: GameSession
