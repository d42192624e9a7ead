"""Typed views of the lobby document.

The store holds plain nested dicts with camelCase keys. These models parse a
snapshot into typed objects for reading; writes are expressed as dict patches
so that server timestamp sentinels can be embedded.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LobbyStatus(str, Enum):
    """Top-level lobby status."""
    WAITING = "waiting"
    VOTING = "voting"
    PLAYING = "playing"
    FINISHED = "finished"


class StoreModel(BaseModel):
    """Base model: accepts both camelCase store keys and snake_case names."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PlayerInfo(StoreModel):
    """A player entry under `lobbies/{code}/players/{playerId}`."""
    name: str
    is_host: bool = Field(False, alias="isHost")
    joined_at: int = Field(0, alias="joinedAt")


class LobbySettings(StoreModel):
    text_clue_mode_enabled: bool = Field(False, alias="textClueModeEnabled")


class Clue(StoreModel):
    text: str
    submitted_at: int = Field(0, alias="submittedAt")


class ClueState(StoreModel):
    """Round-robin clue bookkeeping for text-clue mode."""
    enabled: bool = False
    turn_order: list[str] = Field(default_factory=list, alias="turnOrder")
    current_turn_index: int = Field(0, alias="currentTurnIndex")
    clues: dict[str, Clue] = Field(default_factory=dict)
    completed: bool = False

    @property
    def current_player(self) -> Optional[str]:
        """Whose turn it is, or None once every player has given a clue."""
        if self.completed or self.current_turn_index >= len(self.turn_order):
            return None
        return self.turn_order[self.current_turn_index]


class RoundResults(StoreModel):
    """Outcome of the player vote, published by the host."""
    chameleon_id: str = Field(alias="chameleonId")
    chameleon_name: str = Field("Unknown", alias="chameleonName")
    most_voted_id: Optional[str] = Field(None, alias="mostVotedId")
    most_voted_name: str = Field("Unknown", alias="mostVotedName")
    chameleon_caught: bool = Field(False, alias="chameleonCaught")
    secret_word: Optional[str] = Field(None, alias="secretWord")
    votes: dict[str, int] = Field(default_factory=dict)
    tied: bool = False


class GameRound(StoreModel):
    """The `game` sub-record, present while the lobby is not waiting."""
    round: int = 0
    started_at: Optional[int] = Field(None, alias="startedAt")
    topics: list[str] = Field(default_factory=list)
    votes: dict[str, str] = Field(default_factory=dict)
    selected_topic: Optional[str] = Field(None, alias="selectedTopic")
    chameleon: Optional[str] = None
    secret_word: Optional[str] = Field(None, alias="secretWord")
    roles_assigned_at: Optional[int] = Field(None, alias="rolesAssignedAt")
    discussion_started_at: Optional[int] = Field(None, alias="discussionStartedAt")
    discussion_duration: int = Field(180, alias="discussionDuration")
    vote_lock_time: int = Field(15, alias="voteLockTime")
    ready_to_vote: dict[str, bool] = Field(default_factory=dict, alias="readyToVote")
    voting_opened_at: Optional[int] = Field(None, alias="votingOpenedAt")
    player_votes: dict[str, str] = Field(default_factory=dict, alias="playerVotes")
    clue_state: Optional[ClueState] = Field(None, alias="clueState")
    results: Optional[RoundResults] = None


class Lobby(StoreModel):
    """The whole `lobbies/{code}` record."""
    code: str
    host: str
    status: LobbyStatus = LobbyStatus.WAITING
    created_at: Optional[int] = Field(None, alias="createdAt")
    rounds_played: int = Field(0, alias="roundsPlayed")
    settings: LobbySettings = Field(default_factory=LobbySettings)
    players: dict[str, PlayerInfo] = Field(default_factory=dict)
    game: Optional[GameRound] = None

    @classmethod
    def from_snapshot(cls, code: str, data: Optional[dict[str, Any]]) -> Optional["Lobby"]:
        """Parse a raw snapshot; None means the lobby does not exist."""
        if data is None:
            return None
        return cls.model_validate({"code": code, **data})

    @property
    def player_ids(self) -> list[str]:
        """Player ids in join order."""
        ordered = sorted(
            enumerate(self.players.items()),
            key=lambda item: (item[1][1].joined_at, item[0]),
        )
        return [player_id for _, (player_id, _) in ordered]

    def player_name(self, player_id: Optional[str]) -> str:
        player = self.players.get(player_id) if player_id else None
        return player.name if player else "Unknown"

    def current_votes(self, votes: dict[str, str]) -> dict[str, str]:
        """Votes cast by players still in the lobby."""
        return {voter: choice for voter, choice in votes.items() if voter in self.players}

    def everyone_voted(self, votes: dict[str, str]) -> bool:
        """True when every current player has a vote in `votes`."""
        return bool(self.players) and all(pid in votes for pid in self.players)
