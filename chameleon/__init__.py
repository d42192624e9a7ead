"""Chameleon - lobby synchronisation for a social deduction party game."""

from .config import GameConfig, load_config
from .session import LobbyClient, SessionContext

__version__ = "0.1.0"

__all__ = ["GameConfig", "LobbyClient", "SessionContext", "load_config"]
