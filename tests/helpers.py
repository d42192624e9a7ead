"""Shared fixtures for the test suite."""

import asyncio
from typing import Any, Optional

from chameleon.models import Lobby
from chameleon.store.base import TransactionResult, split_path
from chameleon.store.memory import InMemoryLobbyStore

CODE = "ABCDEF"
T0 = 1_700_000_000_000


class FakeClock:
    """A millisecond clock that only moves when told to."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


def lobby_record(
    players: list[str],
    host: Optional[str] = None,
    status: str = "waiting",
    game: Optional[dict[str, Any]] = None,
    text_clues: bool = False,
) -> dict[str, Any]:
    """A raw lobby document; players join one second apart in list order."""
    host = host or players[0]
    record: dict[str, Any] = {
        "code": CODE,
        "host": host,
        "status": status,
        "createdAt": T0,
        "settings": {"textClueModeEnabled": text_clues},
        "players": {
            pid: {"name": f"Player {pid}", "isHost": pid == host, "joinedAt": T0 + i * 1000}
            for i, pid in enumerate(players)
        },
    }
    if game is not None:
        record["game"] = game
    return record


class LosingStore(InMemoryLobbyStore):
    """Loses the next `drops` whole-lobby transactions as if other writers kept winning."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.drops = 0

    async def transaction(self, path, fn):
        if self.drops and len(split_path(path)) == 2:
            self.drops -= 1
            return TransactionResult(committed=False, value=await self.get(path))
        return await super().transaction(path, fn)


def make_lobby(players: list[str], **kwargs) -> Lobby:
    return Lobby.from_snapshot(CODE, lobby_record(players, **kwargs))


async def settle(rounds: int = 5) -> None:
    """Let callbacks scheduled with call_soon run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
