"""Role definitions for the Chameleon game."""

from dataclasses import dataclass
from typing import Literal, Optional

from ..models import GameRound


@dataclass(frozen=True)
class Role:
    """A role in the Chameleon game."""

    name: str
    team: Literal["players", "chameleon"]
    knows_word: bool
    description: str = ""

    def __str__(self) -> str:
        return self.name


# All available roles
ROLES = {
    "Chameleon": Role(
        name="Chameleon",
        team="chameleon",
        knows_word=False,
        description="Blend in! You know the topic but not the secret word. Try to avoid being caught!",
    ),
    "Player": Role(
        name="Player",
        team="players",
        knows_word=True,
        description="Find the Chameleon! But be careful not to reveal the secret word.",
    ),
}


def get_role(name: str) -> Role:
    """Get a role by name."""
    if name not in ROLES:
        raise ValueError(f"Unknown role: {name}. Available: {list(ROLES.keys())}")
    return ROLES[name]


@dataclass(frozen=True)
class RoleCard:
    """What one player is shown at role reveal.

    The secret word is only ever filled in for roles that know it.
    """
    role: Role
    topic: Optional[str]
    secret_word: Optional[str]

    @property
    def is_chameleon(self) -> bool:
        return self.role.team == "chameleon"


def role_card_for(game: Optional[GameRound], player_id: str) -> Optional[RoleCard]:
    """Build a player's role card, or None before roles are assigned."""
    if game is None or game.chameleon is None:
        return None

    role = get_role("Chameleon" if game.chameleon == player_id else "Player")
    return RoleCard(
        role=role,
        topic=game.selected_topic,
        secret_word=game.secret_word if role.knows_word else None,
    )
