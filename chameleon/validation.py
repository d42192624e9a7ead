"""Input validation and identifier generation."""

import random
import re
import string
import time
from typing import Optional

from .config import GameConfig
from .errors import ValidationError

_LETTERS = re.compile(r"^[A-Z]+$")


def validate_player_name(name: str) -> str:
    """Return the trimmed name, or raise ValidationError."""
    if not name or not isinstance(name, str):
        raise ValidationError("Name is required")
    trimmed = name.strip()
    if len(trimmed) < 2:
        raise ValidationError("Name must be at least 2 characters")
    if len(trimmed) > 20:
        raise ValidationError("Name must be at most 20 characters")
    return trimmed


def validate_lobby_code(code: str, config: GameConfig, custom: bool = False) -> str:
    """Normalise a lobby code to upper case and check its shape.

    Args:
        code: Code typed by the user.
        config: Supplies the allowed code lengths.
        custom: True for a host-chosen code, which may use any length in
            [lobbyCodeMinLength, lobbyCodeMaxLength]. Otherwise the code must
            be exactly lobbyCodeLength letters.
    """
    if not code or not isinstance(code, str):
        raise ValidationError("Code is required")
    normalized = code.strip().upper()
    if custom:
        low, high = config.lobby_code_min_length, config.lobby_code_max_length
        if not low <= len(normalized) <= high:
            raise ValidationError(f"Code must be {low}-{high} characters")
    elif len(normalized) != config.lobby_code_length:
        raise ValidationError(f"Code must be {config.lobby_code_length} characters")
    if not _LETTERS.match(normalized):
        raise ValidationError("Code must contain letters only")
    return normalized


def generate_lobby_code(length: int = 6, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(string.ascii_uppercase) for _ in range(length))


def generate_player_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    suffix = "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"player_{int(time.time() * 1000)}_{suffix}"
