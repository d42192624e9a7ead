"""Shared lobby store - the contract and an in-process implementation."""

from .base import (
    ABORT,
    SERVER_TIMESTAMP,
    LobbyStore,
    TimedStore,
    TransactionResult,
    clue_state_path,
    game_path,
    lobby_path,
)
from .memory import InMemoryLobbyStore

__all__ = [
    "ABORT",
    "SERVER_TIMESTAMP",
    "LobbyStore",
    "TimedStore",
    "TransactionResult",
    "InMemoryLobbyStore",
    "clue_state_path",
    "game_path",
    "lobby_path",
]
