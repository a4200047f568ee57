"""Error kinds raised by the game engine.

Every expected business-rule violation is a :class:`GameError`. The transport
layer maps ``kind`` to a status code; anything that is not a ``GameError`` is a
programming error and is left to propagate.
"""

from __future__ import annotations


class GameError(ValueError):
    kind = "game_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(GameError):
    kind = "not_found"


class SessionNotFound(NotFound):
    def __init__(self, session_ref: str):
        super().__init__(f"Game session not found: {session_ref}")
        self.session_ref = session_ref


class PlayerNotFound(NotFound):
    def __init__(self, player_id: str):
        super().__init__(f"Player not found: {player_id}")
        self.player_id = player_id


class InvalidState(GameError):
    kind = "invalid_state"


class CodeCollision(InvalidState):
    def __init__(self, code: str):
        super().__init__(f"Game code already in use: {code}")
        self.code = code


class InvalidInput(GameError):
    kind = "invalid_input"


class TokenUnavailable(InvalidInput):
    def __init__(self, token: int):
        super().__init__(f"Token {token} is not available")
        self.token = token


class ResourceExhausted(GameError):
    kind = "resource_exhausted"


class SessionFull(ResourceExhausted):
    def __init__(self, max_players: int):
        super().__init__(f"Game is full ({max_players} players max)")
        self.max_players = max_players


class UpstreamUnavailable(GameError):
    kind = "upstream_unavailable"


class QuestionSourceUnavailable(UpstreamUnavailable):
    pass
