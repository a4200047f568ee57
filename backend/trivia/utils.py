import secrets
import time
import uuid

# No I, O, 0 or 1: they are easy to misread when a code is shared out loud.
GAME_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GAME_CODE_LENGTH = 4


def now_ts() -> float:
    return time.time()


def generate_game_code() -> str:
    return "".join(secrets.choice(GAME_CODE_ALPHABET) for _ in range(GAME_CODE_LENGTH))


def _unique_suffix() -> str:
    return f"{int(now_ts() * 1000)}_{uuid.uuid4().hex[:9]}"


def generate_player_id() -> str:
    return f"player_{_unique_suffix()}"


def generate_session_id() -> str:
    return f"session_{_unique_suffix()}"


def normalize_code(code: str) -> str:
    return code.strip().upper()
