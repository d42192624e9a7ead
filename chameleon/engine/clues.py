"""Round-robin text clue submission over the shared clue record."""

import logging
from typing import Any, Optional

from ..errors import ValidationError
from ..models import ClueState
from ..store.base import ABORT, SERVER_TIMESTAMP, LobbyStore, clue_state_path

logger = logging.getLogger(__name__)


def new_clue_state(turn_order: list[str]) -> dict[str, Any]:
    """Initial clue record for a round: first player in `turn_order` is up."""
    return {
        "enabled": True,
        "turnOrder": list(turn_order),
        "currentTurnIndex": 0,
        "completed": len(turn_order) == 0,
    }


def normalize_clue(text: str, max_length: int = 60) -> str:
    """Trim a clue and check its length."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Clue cannot be empty")
    text = " ".join(text.split())
    if len(text) > max_length:
        raise ValidationError(f"Clue must be at most {max_length} characters")
    return text


def apply_clue(current: Optional[dict[str, Any]], player_id: str, text: str) -> Any:
    """Transaction body: record `player_id`'s clue if it is their turn.

    Returns the new clue record, or ABORT when the submission is out of turn
    or the record is not accepting clues.
    """
    if current is None:
        return ABORT
    state = ClueState.model_validate(current)
    if not state.enabled or state.completed:
        return ABORT
    if state.current_player != player_id or player_id in state.clues:
        return ABORT

    next_index = state.current_turn_index + 1
    clues = dict(current.get("clues") or {})
    clues[player_id] = {"text": text, "submittedAt": SERVER_TIMESTAMP}
    return {
        **current,
        "clues": clues,
        "currentTurnIndex": next_index,
        "completed": next_index >= len(state.turn_order),
    }


class ClueProtocol:
    """Submits clues for one lobby.

    Each submission is a single compare-and-swap on the clue record, so at
    most one clue is accepted per turn no matter how many devices retry.
    """

    def __init__(self, store: LobbyStore, code: str, max_length: int = 60):
        self.store = store
        self.code = code
        self.max_length = max_length

    async def submit(self, player_id: str, text: str) -> bool:
        """Submit a clue.

        Args:
            player_id: Who is submitting.
            text: The clue; trimmed and length-checked first.

        Returns:
            True if the clue was committed, False if it was not this
            player's turn (including a retry of an already accepted clue).
        """
        text = normalize_clue(text, self.max_length)
        result = await self.store.transaction(
            clue_state_path(self.code),
            lambda current: apply_clue(current, player_id, text),
        )
        if result.committed:
            logger.info("Clue from %s accepted in lobby %s", player_id, self.code)
        else:
            logger.info("Clue from %s rejected in lobby %s: not their turn", player_id, self.code)
        return result.committed
