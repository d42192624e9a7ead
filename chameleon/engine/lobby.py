"""Lobby membership: create, join and leave.

Every membership change is one transaction on the lobby record, so a
departing host is replaced in the same write that removes them.
"""

import logging
import random
from typing import Any, Optional

from ..config import GameConfig
from ..errors import PreconditionFailed
from ..models import Lobby, LobbyStatus
from ..store.base import ABORT, SERVER_TIMESTAMP, LobbyStore, lobby_path
from ..validation import generate_lobby_code, validate_lobby_code

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


def new_lobby_record(code: str, host_id: str, host_name: str, text_clues: bool = False) -> dict[str, Any]:
    """The document written when a lobby is created."""
    return {
        "code": code,
        "host": host_id,
        "createdAt": SERVER_TIMESTAMP,
        "status": LobbyStatus.WAITING.value,
        "settings": {"textClueModeEnabled": text_clues},
        "players": {
            host_id: {"name": host_name, "isHost": True, "joinedAt": SERVER_TIMESTAMP},
        },
    }


async def create_lobby(
    store: LobbyStore,
    config: GameConfig,
    host_id: str,
    host_name: str,
    code: Optional[str] = None,
    text_clues: bool = False,
    rng: Optional[random.Random] = None,
) -> str:
    """Create a lobby and return its code.

    Args:
        store: Shared store.
        config: Code length settings.
        host_id: Id of the creating player, who becomes host.
        host_name: Display name of the host.
        code: Optional host-chosen code; random when omitted.
        text_clues: Enable round-robin text clues for this lobby.
        rng: Random source for code generation.

    Raises:
        PreconditionFailed: The chosen code is taken, or no free random code
            was found.
    """
    if code is not None:
        candidates = [validate_lobby_code(code, config, custom=True)]
    else:
        rng = rng or random.Random()
        candidates = [
            generate_lobby_code(config.lobby_code_length, rng) for _ in range(MAX_CODE_ATTEMPTS)
        ]

    for candidate in candidates:
        record = new_lobby_record(candidate, host_id, host_name, text_clues)
        result = await store.transaction(
            lobby_path(candidate),
            lambda current, record=record: record if current is None else ABORT,
        )
        if result.committed:
            logger.info("Lobby %s created by %s", candidate, host_id)
            return candidate
        logger.debug("Lobby code %s already taken", candidate)

    if code is not None:
        raise PreconditionFailed("Lobby code already taken")
    raise PreconditionFailed("Failed to generate unique code. Try again.")


async def join_lobby(
    store: LobbyStore,
    config: GameConfig,
    code: str,
    player_id: str,
    player_name: str,
) -> None:
    """Add a player to a waiting lobby.

    Raises:
        PreconditionFailed: Lobby missing, already started, or full.
    """
    code = validate_lobby_code(code, config, custom=True)
    failure: list[str] = []

    def add_player(current: Optional[dict[str, Any]]) -> Any:
        failure.clear()
        lobby = Lobby.from_snapshot(code, current)
        if lobby is None:
            failure.append("Lobby not found")
            return ABORT
        if player_id in lobby.players:
            # Rejoining with the same id changes nothing
            failure.append("")
            return ABORT
        if lobby.status != LobbyStatus.WAITING:
            failure.append("Game already started")
            return ABORT
        if len(lobby.players) >= config.max_players:
            failure.append("Lobby is full")
            return ABORT

        players = dict(current.get("players") or {})
        players[player_id] = {"name": player_name, "isHost": False, "joinedAt": SERVER_TIMESTAMP}
        return {**current, "players": players}

    result = await store.transaction(lobby_path(code), add_player)
    if result.committed:
        logger.info("%s joined lobby %s", player_id, code)
        return
    if failure and failure[0]:
        raise PreconditionFailed(failure[0])


def remove_player(current: Optional[dict[str, Any]], code: str, player_id: str) -> Any:
    """Transaction body for a departure.

    Deletes the lobby when the last player leaves; otherwise, if the host
    left, hands the host role to the earliest remaining joiner.
    """
    lobby = Lobby.from_snapshot(code, current)
    if lobby is None or player_id not in lobby.players:
        return ABORT

    remaining = [pid for pid in lobby.player_ids if pid != player_id]
    if not remaining:
        return None

    updated = {**current, "players": {
        pid: dict(data) for pid, data in current["players"].items() if pid != player_id
    }}
    for votes_key in ("votes", "playerVotes", "readyToVote"):
        votes = (updated.get("game") or {}).get(votes_key)
        if votes and player_id in votes:
            updated["game"] = {
                **updated["game"],
                votes_key: {k: v for k, v in votes.items() if k != player_id},
            }

    if lobby.host == player_id:
        new_host = remaining[0]
        updated["host"] = new_host
        updated["players"][new_host]["isHost"] = True
    return updated


async def leave_lobby(store: LobbyStore, code: str, player_id: str) -> Optional[str]:
    """Remove a player; returns the host id afterwards, or None if the lobby is gone."""
    result = await store.transaction(
        lobby_path(code),
        lambda current: remove_player(current, code, player_id),
    )
    if not result.committed:
        return None if result.value is None else result.value.get("host")

    if result.value is None:
        logger.info("Last player left, lobby %s deleted", code)
        return None
    new_host = result.value.get("host")
    logger.info("%s left lobby %s (host: %s)", player_id, code, new_host)
    return new_host
