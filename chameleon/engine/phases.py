"""Screen definitions and how a lobby snapshot maps onto them."""

from enum import Enum, auto
from typing import Optional

from ..models import Lobby, LobbyStatus


class Screen(Enum):
    """Screens a client can be on."""
    WELCOME = auto()       # No lobby, or the lobby was deleted
    LOBBY = auto()         # Waiting for the host to start
    TOPIC_VOTING = auto()  # Players pick a topic from the ballot
    ROLE_REVEAL = auto()   # Roles assigned, shown for a short window
    DISCUSSION = auto()    # Timed discussion, optional text clues
    VOTING = auto()        # Players vote for the suspected chameleon
    RESULTS = auto()       # Round outcome

    @property
    def label(self) -> str:
        """Human-readable screen name."""
        return self.name.replace("_", " ").title()


# Local countdown names
ROLE_REVEAL_TIMER = "role_reveal"
DISCUSSION_TIMER = "discussion"
READY_TIMER = "ready_to_vote"
VOTE_LOCK_TIMER = "vote_lock"


def screen_for(lobby: Optional[Lobby]) -> Screen:
    """Classify a snapshot.

    Status is the primary discriminant; inside `playing` the vote markers win
    over the discussion anchor, which wins over plain role reveal.
    """
    if lobby is None:
        return Screen.WELCOME

    status = lobby.status
    if status == LobbyStatus.WAITING:
        return Screen.LOBBY
    if status == LobbyStatus.VOTING:
        return Screen.TOPIC_VOTING
    if status == LobbyStatus.FINISHED:
        return Screen.RESULTS

    game = lobby.game
    if game is None:
        # Playing without a round only happens mid-reset
        return Screen.LOBBY
    if game.voting_opened_at is not None or game.player_votes:
        return Screen.VOTING
    if game.discussion_started_at is not None:
        return Screen.DISCUSSION
    return Screen.ROLE_REVEAL
