"""Per-client derivation of what to show and do from a lobby snapshot.

`LobbyStateMachine.derive` is the single recomputation function: it runs on
every snapshot and on every clock tick, and it is idempotent. Countdowns are
activated by anchor, so a replayed snapshot starts nothing new, and host
duties are handed out once per key through `take_duties`.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional

from ..config import GameConfig
from ..models import GameRound, Lobby, RoundResults
from .phases import (
    DISCUSSION_TIMER,
    READY_TIMER,
    ROLE_REVEAL_TIMER,
    VOTE_LOCK_TIMER,
    Screen,
    screen_for,
)
from .roles import RoleCard, role_card_for
from .timer import CountdownRegistry, ServerClock


class Action(Enum):
    """User actions a screen may enable."""
    CREATE_LOBBY = auto()
    JOIN_LOBBY = auto()
    LEAVE_LOBBY = auto()
    START_GAME = auto()
    VOTE_TOPIC = auto()
    CONTINUE = auto()
    READY_TO_VOTE = auto()
    SUBMIT_CLUE = auto()
    VOTE_PLAYER = auto()
    PLAY_AGAIN = auto()
    EXIT_TO_MENU = auto()


class DutyKind(Enum):
    """Host-only writes the machine can find due."""
    PUBLISH_TOPIC_DECISION = auto()
    START_DISCUSSION = auto()
    OPEN_VOTING = auto()
    PUBLISH_RESULTS = auto()


@dataclass(frozen=True)
class Duty:
    """A due host write; `key` identifies the round and anchor it belongs to."""
    kind: DutyKind
    key: str


@dataclass(frozen=True)
class PlayerEntry:
    id: str
    name: str
    is_host: bool


@dataclass(frozen=True)
class ClueTurn:
    """Clue-mode progress as seen by one player."""
    turn_order: tuple[str, ...]
    current_player: Optional[str]
    is_my_turn: bool
    clues: tuple[tuple[str, str], ...]  # (player id, text) in turn order
    completed: bool


@dataclass(frozen=True)
class ClientView:
    """Everything a client needs to render one moment of the game."""
    screen: Screen
    is_host: bool = False
    lobby_code: Optional[str] = None
    players: tuple[PlayerEntry, ...] = ()
    countdowns: dict[str, int] = field(default_factory=dict)
    actions: frozenset[Action] = frozenset()
    topics: tuple[str, ...] = ()
    topic: Optional[str] = None
    role: Optional[RoleCard] = None
    my_vote: Optional[str] = None
    votes_cast: int = 0
    players_total: int = 0
    vote_candidates: tuple[str, ...] = ()
    clue_turn: Optional[ClueTurn] = None
    results: Optional[RoundResults] = None
    duties: tuple[Duty, ...] = ()

    def can(self, action: Action) -> bool:
        return action in self.actions


WELCOME_VIEW = ClientView(
    screen=Screen.WELCOME,
    actions=frozenset({Action.CREATE_LOBBY, Action.JOIN_LOBBY}),
)


class LobbyStateMachine:
    """Turns lobby snapshots into client views for one local player."""

    def __init__(self, config: GameConfig, clock: Optional[Callable[[], int]] = None):
        """Initialize the machine.

        Args:
            config: Game configuration (reveal window, ready delay, player limits).
            clock: Server-corrected clock in milliseconds.
        """
        self.config = config
        self.clock = clock or ServerClock()
        self.timers = CountdownRegistry()
        self.view = WELCOME_VIEW
        self._last: Optional[tuple[Lobby, str, bool]] = None
        self._claimed: set[Duty] = set()
        self._role_hidden: set[tuple[int, Optional[int]]] = set()
        self._round: Optional[int] = None

    def reset(self) -> ClientView:
        """Forget the lobby: stop every countdown and return to the welcome view."""
        self.timers.cancel_all()
        self._last = None
        self._claimed.clear()
        self._role_hidden.clear()
        self._round = None
        self.view = WELCOME_VIEW
        return self.view

    def derive(
        self,
        snapshot: Optional[Lobby],
        local_player_id: str,
        is_host: bool,
        now: Optional[int] = None,
    ) -> ClientView:
        """Compute the view for a snapshot.

        Args:
            snapshot: Parsed lobby, or None when the lobby was deleted.
            local_player_id: The player this client acts for.
            is_host: Whether that player is the lobby host.
            now: Server time in milliseconds; defaults to the clock.
        """
        if snapshot is None:
            return self.reset()

        now = self.clock() if now is None else now
        lobby = snapshot
        game = lobby.game
        self._enter_round(game.round if game is not None else None)
        screen = screen_for(lobby)
        self._sync_timers(screen, game)
        countdowns = self.timers.snapshot(now)

        view = ClientView(
            screen=screen,
            is_host=is_host,
            lobby_code=lobby.code,
            players=tuple(
                PlayerEntry(pid, lobby.players[pid].name, pid == lobby.host)
                for pid in lobby.player_ids
            ),
            countdowns=countdowns,
            actions=self._actions(screen, lobby, local_player_id, is_host, countdowns),
            duties=self._duties(screen, lobby, countdowns) if is_host else (),
            **self._round_fields(screen, lobby, local_player_id, countdowns),
        )

        self._last = (lobby, local_player_id, is_host)
        self.view = view
        return view

    def tick(self, now: Optional[int] = None) -> ClientView:
        """Re-derive from the last snapshot, e.g. on a 1 Hz timer."""
        if self._last is None:
            return self.view
        return self.derive(*self._last, now=now)

    def take_duties(self, view: Optional[ClientView] = None) -> list[Duty]:
        """Claim the view's duties that were not handed out before."""
        view = view or self.view
        fresh = [duty for duty in view.duties if duty not in self._claimed]
        self._claimed.update(fresh)
        return fresh

    def release(self, duty: Duty) -> None:
        """Make a claimed duty available again, after its write failed."""
        self._claimed.discard(duty)

    def acknowledge_role(self) -> None:
        """Hide the local role card for the current round before its window ends."""
        if self._last is None or self._last[0].game is None:
            return
        game = self._last[0].game
        self._role_hidden.add((game.round, game.roles_assigned_at))

    # --- internals ---

    def _enter_round(self, round_number: Optional[int]) -> None:
        # Duty claims and hidden role cards only matter within one round
        if round_number != self._round:
            self._round = round_number
            self._claimed.clear()
            self._role_hidden.clear()

    def _sync_timers(self, screen: Screen, game: Optional[GameRound]) -> None:
        wanted: set[str] = set()
        if game is not None:
            if screen == Screen.ROLE_REVEAL and game.roles_assigned_at is not None:
                self.timers.activate(ROLE_REVEAL_TIMER, game.roles_assigned_at, self.config.role_reveal_time)
                wanted.add(ROLE_REVEAL_TIMER)
            elif screen == Screen.DISCUSSION:
                anchor = game.discussion_started_at
                self.timers.activate(DISCUSSION_TIMER, anchor, game.discussion_duration)
                self.timers.activate(READY_TIMER, anchor, self.config.min_discussion_before_vote)
                wanted.update({DISCUSSION_TIMER, READY_TIMER})
            elif screen == Screen.VOTING and game.voting_opened_at is not None:
                self.timers.activate(VOTE_LOCK_TIMER, game.voting_opened_at, game.vote_lock_time)
                wanted.add(VOTE_LOCK_TIMER)
        self.timers.keep_only(wanted)

    def _role_visible(self, game: GameRound, countdowns: dict[str, int]) -> bool:
        if (game.round, game.roles_assigned_at) in self._role_hidden:
            return False
        return countdowns.get(ROLE_REVEAL_TIMER, 1) > 0

    def _round_fields(
        self,
        screen: Screen,
        lobby: Lobby,
        player_id: str,
        countdowns: dict[str, int],
    ) -> dict:
        game = lobby.game
        if game is None:
            return {}

        fields: dict = {"topic": game.selected_topic}
        if screen == Screen.TOPIC_VOTING:
            votes = lobby.current_votes(game.votes)
            fields.update(
                topics=tuple(game.topics),
                my_vote=votes.get(player_id),
                votes_cast=len(votes),
                players_total=len(lobby.players),
            )
        elif screen == Screen.ROLE_REVEAL:
            if self._role_visible(game, countdowns):
                fields["role"] = role_card_for(game, player_id)
        elif screen == Screen.DISCUSSION:
            fields["clue_turn"] = self._clue_turn(game, player_id)
        elif screen == Screen.VOTING:
            votes = lobby.current_votes(game.player_votes)
            fields.update(
                my_vote=votes.get(player_id),
                votes_cast=len(votes),
                players_total=len(lobby.players),
                vote_candidates=tuple(pid for pid in lobby.player_ids if pid != player_id),
                clue_turn=self._clue_turn(game, player_id),
            )
        elif screen == Screen.RESULTS:
            fields["results"] = game.results
        return fields

    @staticmethod
    def _clue_turn(game: GameRound, player_id: str) -> Optional[ClueTurn]:
        state = game.clue_state
        if state is None or not state.enabled:
            return None
        return ClueTurn(
            turn_order=tuple(state.turn_order),
            current_player=state.current_player,
            is_my_turn=state.current_player == player_id,
            clues=tuple(
                (pid, state.clues[pid].text) for pid in state.turn_order if pid in state.clues
            ),
            completed=state.completed,
        )

    def _actions(
        self,
        screen: Screen,
        lobby: Lobby,
        player_id: str,
        is_host: bool,
        countdowns: dict[str, int],
    ) -> frozenset[Action]:
        if screen == Screen.WELCOME:
            return WELCOME_VIEW.actions

        actions = {Action.LEAVE_LOBBY}
        game = lobby.game

        if screen == Screen.LOBBY:
            if is_host and len(lobby.players) >= self.config.min_players:
                actions.add(Action.START_GAME)
        elif screen == Screen.TOPIC_VOTING:
            if player_id not in game.votes:
                actions.add(Action.VOTE_TOPIC)
        elif screen == Screen.ROLE_REVEAL:
            actions.add(Action.CONTINUE)
        elif screen == Screen.DISCUSSION:
            if countdowns.get(READY_TIMER, 0) == 0 and player_id not in game.ready_to_vote:
                actions.add(Action.READY_TO_VOTE)
            state = game.clue_state
            if state is not None and state.enabled and state.current_player == player_id:
                actions.add(Action.SUBMIT_CLUE)
        elif screen == Screen.VOTING:
            if countdowns.get(VOTE_LOCK_TIMER, 0) == 0 and player_id not in game.player_votes:
                actions.add(Action.VOTE_PLAYER)
        elif screen == Screen.RESULTS:
            actions.add(Action.EXIT_TO_MENU)
            if is_host:
                actions.add(Action.PLAY_AGAIN)
        return frozenset(actions)

    def _duties(self, screen: Screen, lobby: Lobby, countdowns: dict[str, int]) -> tuple[Duty, ...]:
        game = lobby.game
        if game is None:
            return ()

        if screen == Screen.TOPIC_VOTING:
            if not game.selected_topic and lobby.everyone_voted(lobby.current_votes(game.votes)):
                return (Duty(DutyKind.PUBLISH_TOPIC_DECISION, f"topic:{game.round}:{game.started_at}"),)
        elif screen == Screen.ROLE_REVEAL:
            if countdowns.get(ROLE_REVEAL_TIMER) == 0:
                return (Duty(DutyKind.START_DISCUSSION, f"discussion:{game.roles_assigned_at}"),)
        elif screen == Screen.DISCUSSION:
            ready = lobby.everyone_voted({pid: "ready" for pid in game.ready_to_vote})
            if countdowns.get(DISCUSSION_TIMER) == 0 or ready:
                return (Duty(DutyKind.OPEN_VOTING, f"voting:{game.discussion_started_at}"),)
        elif screen == Screen.VOTING:
            if game.results is None and lobby.everyone_voted(lobby.current_votes(game.player_votes)):
                return (Duty(DutyKind.PUBLISH_RESULTS, f"results:{game.round}:{game.voting_opened_at}"),)
        return ()
