"""Per-player writes into the round record: topic votes, player votes, ready markers.

Each write is a transaction on `lobbies/{code}/game` so it only lands while
the round is still in the phase it was meant for. A view that lags behind
the host cannot leave a stray vote in the next phase or a reset lobby.
"""

import logging
from typing import Any, Callable, Optional

from ..store.base import ABORT, LobbyStore, game_path

logger = logging.getLogger(__name__)

GameCheck = Callable[[dict[str, Any]], bool]


def topic_vote_open(game: dict[str, Any]) -> bool:
    return bool(game.get("topics")) and not game.get("selectedTopic")


def discussion_open(game: dict[str, Any]) -> bool:
    return game.get("discussionStartedAt") is not None and game.get("votingOpenedAt") is None


def player_vote_open(game: dict[str, Any]) -> bool:
    return game.get("chameleon") is not None and game.get("results") is None


async def _record_once(
    store: LobbyStore,
    code: str,
    field: str,
    player_id: str,
    value: Any,
    is_open: GameCheck,
) -> bool:
    def fn(current: Optional[dict[str, Any]]) -> Any:
        if current is None or not is_open(current):
            return ABORT
        entries = current.get(field) or {}
        if player_id in entries:
            return ABORT
        return {**current, field: {**entries, player_id: value}}

    result = await store.transaction(game_path(code), fn)
    logger.debug("%s %s=%r in lobby %s (recorded: %s)", player_id, field, value, code, result.committed)
    return result.committed


async def cast_topic_vote(store: LobbyStore, code: str, player_id: str, topic: str) -> bool:
    """Record a topic vote.

    Returns:
        False if the player already voted or the topic has been chosen.
    """
    return await _record_once(store, code, "votes", player_id, topic, topic_vote_open)


async def cast_player_vote(store: LobbyStore, code: str, voter_id: str, target_id: str) -> bool:
    """Record an accusation.

    Returns:
        False if the voter already voted or the results are out.
    """
    return await _record_once(store, code, "playerVotes", voter_id, target_id, player_vote_open)


async def mark_ready(store: LobbyStore, code: str, player_id: str) -> bool:
    """Mark a player ready to vote while the discussion runs."""
    return await _record_once(store, code, "readyToVote", player_id, True, discussion_open)
