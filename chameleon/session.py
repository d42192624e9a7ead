"""A player's session: one lobby subscription driving one state machine."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .config import GameConfig
from .engine.clues import ClueProtocol
from .engine.host import HostAuthority
from .engine.lobby import create_lobby, join_lobby, leave_lobby
from .engine.machine import Action, ClientView, Duty, DutyKind, LobbyStateMachine, WELCOME_VIEW
from .engine.phases import Screen
from .engine.timer import ServerClock
from .engine.votes import cast_player_vote, cast_topic_vote, mark_ready
from .errors import ChameleonError, LobbyVanished, PreconditionFailed, ValidationError
from .models import Lobby
from .reporting.markdown_logger import MarkdownLogger
from .store.base import LobbyStore, TimedStore, lobby_path
from .validation import generate_player_id, validate_lobby_code, validate_player_name

logger = logging.getLogger(__name__)

ViewCallback = Callable[[ClientView], None]


@dataclass
class SessionContext:
    """Who this client is and which lobby it is in."""
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    lobby_code: Optional[str] = None
    is_host: bool = False

    @property
    def in_lobby(self) -> bool:
        return self.lobby_code is not None


class LobbyClient:
    """Connects one player to the shared store.

    Snapshots and a 1 Hz ticker both feed `LobbyStateMachine.derive`; when
    the local player is host, duties found due are run as background tasks
    through `HostAuthority`.
    """

    def __init__(
        self,
        store: LobbyStore,
        config: GameConfig,
        clock: Optional[Callable[[], int]] = None,
        rng: Optional[random.Random] = None,
        journal: Optional[MarkdownLogger] = None,
        on_view: Optional[ViewCallback] = None,
        tick_interval: float = 1.0,
        player_id: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            store: Shared store; every call is bounded by `config.store_timeout`.
            config: Game configuration.
            clock: Local clock in milliseconds, corrected on `connect`.
            rng: Random source for ids and host decisions.
            journal: Markdown journal the host writes rounds to.
            on_view: Called with every recomputed view.
            tick_interval: Seconds between clock ticks.
            player_id: Known id when rejoining; generated otherwise.
        """
        self.store = TimedStore(store, config.store_timeout)
        self.config = config
        self.rng = rng or random.Random()
        self.clock = ServerClock(clock)
        self.machine = LobbyStateMachine(config, self.clock)
        self.context = SessionContext(player_id=player_id)
        self.journal = journal
        self.on_view = on_view
        self.tick_interval = tick_interval

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._ticker: Optional[asyncio.Task] = None
        self._duty_tasks: set[asyncio.Task] = set()
        self._waiters: list[tuple[Callable[[ClientView], bool], asyncio.Future]] = []
        self._host: Optional[HostAuthority] = None
        self._clues: Optional[ClueProtocol] = None
        self._lobby: Optional[Lobby] = None

    @property
    def view(self) -> ClientView:
        return self.machine.view

    @property
    def lobby(self) -> Optional[Lobby]:
        """Last lobby snapshot received."""
        return self._lobby

    # --- connection ---

    async def connect(self) -> None:
        """Initialise the store and align the clock with server time.

        Raises:
            StoreUnavailable: The store could not be reached.
        """
        await self.store.connect()
        self.clock.offset_ms = await self.store.server_time_offset(self.clock.local_clock())
        logger.debug("Connected, server offset %d ms", self.clock.offset_ms)

    async def close(self) -> None:
        """Stop listening and cancel local work without leaving the lobby."""
        tasks = self._teardown()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # --- lobby membership ---

    def _ensure_player_id(self) -> str:
        if self.context.player_id is None:
            self.context.player_id = generate_player_id(self.rng)
        return self.context.player_id

    async def create_lobby(self, name: str, code: Optional[str] = None, text_clues: bool = False) -> str:
        """Create a lobby hosted by this player and enter it.

        Returns:
            The lobby code.
        """
        name = validate_player_name(name)
        player_id = self._ensure_player_id()
        code = await create_lobby(
            self.store, self.config, player_id, name,
            code=code, text_clues=text_clues, rng=self.rng,
        )
        self.context.player_name = name
        self.context.is_host = True
        self._enter(code)
        return code

    async def join_lobby(self, code: str, name: str) -> None:
        """Join a waiting lobby and enter it."""
        name = validate_player_name(name)
        code = validate_lobby_code(code, self.config, custom=True)
        player_id = self._ensure_player_id()
        await join_lobby(self.store, self.config, code, player_id, name)
        self.context.player_name = name
        self.context.is_host = False
        self._enter(code)

    async def rejoin(self, code: str) -> None:
        """Resubscribe to a lobby this player is still part of, e.g. after a reconnect.

        Raises:
            PreconditionFailed: No known player id, or the player is not in
                the lobby any more.
        """
        if self.context.player_id is None:
            raise PreconditionFailed("No player to rejoin as")
        code = validate_lobby_code(code, self.config, custom=True)
        lobby = Lobby.from_snapshot(code, await self.store.get(lobby_path(code)))
        if lobby is None:
            raise PreconditionFailed("Lobby not found")
        player = lobby.players.get(self.context.player_id)
        if player is None:
            raise PreconditionFailed("You are no longer in this lobby")

        self.context.player_name = player.name
        self.context.is_host = lobby.host == self.context.player_id
        self._enter(code)
        logger.info("%s rejoined lobby %s", self.context.player_id, code)

    async def leave_lobby(self) -> None:
        """Leave the lobby: stop listening now, then remove the player best-effort."""
        code, player_id = self.context.lobby_code, self.context.player_id
        if code is None:
            return
        self._teardown()
        self._publish(self.machine.reset())
        try:
            await leave_lobby(self.store, code, player_id)
        except ChameleonError as e:
            logger.warning("Could not remove %s from lobby %s: %s", player_id, code, e)

    async def exit_to_menu(self) -> None:
        await self.leave_lobby()

    # --- round actions ---

    def _require(self, action: Action, message: str) -> ClientView:
        view = self.view
        if not view.can(action):
            raise PreconditionFailed(message)
        return view

    def _require_host(self) -> HostAuthority:
        if self._host is None or not self.context.is_host:
            raise PreconditionFailed("Only the host can do that")
        return self._host

    async def start_game(self) -> list[str]:
        """Host only: open the topic vote.

        Returns:
            The ballot.
        """
        return await self._require_host().start_round()

    async def play_again(self) -> None:
        """Host only: send everyone back to the lobby for another round."""
        await self._require_host().reset_round()

    async def vote_topic(self, topic: str) -> bool:
        """Vote for a topic on the ballot.

        Returns:
            True if the vote was recorded, False if this player already voted
            or the topic was chosen meanwhile.
        """
        view = self._require(Action.VOTE_TOPIC, "Topic voting is not open")
        if topic not in view.topics:
            raise ValidationError(f"{topic!r} is not on the ballot")
        return await cast_topic_vote(self.store, self.context.lobby_code, self.context.player_id, topic)

    async def continue_from_reveal(self) -> None:
        """Hide the role card; the host also starts the discussion."""
        self._require(Action.CONTINUE, "Roles are not being revealed")
        self.machine.acknowledge_role()
        if self.context.is_host and self._host is not None:
            await self._host.start_discussion()
        self._refresh()

    async def ready_to_vote(self) -> None:
        self._require(Action.READY_TO_VOTE, "Keep discussing a little longer")
        await mark_ready(self.store, self.context.lobby_code, self.context.player_id)

    async def submit_clue(self, text: str) -> bool:
        """Give this player's clue.

        Returns:
            True if accepted, False if it was not this player's turn.
        """
        if self._clues is None:
            raise PreconditionFailed("Not in a lobby")
        return await self._clues.submit(self.context.player_id, text)

    async def vote_player(self, target_id: str) -> bool:
        """Accuse a player.

        Returns:
            True if the vote was recorded, False if this player already voted
            or the results are out.
        """
        view = self._require(Action.VOTE_PLAYER, "Voting is not open yet")
        if target_id == self.context.player_id:
            raise ValidationError("You cannot vote for yourself")
        if target_id not in view.vote_candidates:
            raise ValidationError("Unknown player")
        return await cast_player_vote(self.store, self.context.lobby_code, self.context.player_id, target_id)

    # --- waiting ---

    async def wait_for(
        self,
        predicate: Callable[[ClientView], bool],
        timeout: Optional[float] = None,
    ) -> ClientView:
        """Wait until a recomputed view satisfies `predicate`."""
        if predicate(self.view):
            return self.view
        future = asyncio.get_running_loop().create_future()
        waiter = (predicate, future)
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            self._waiters.remove(waiter)

    async def wait_for_screen(self, screen: Screen, timeout: Optional[float] = None) -> ClientView:
        return await self.wait_for(lambda view: view.screen == screen, timeout)

    # --- internals ---

    def _enter(self, code: str) -> None:
        is_host = self.context.is_host
        self._teardown()
        self.context.is_host = is_host
        player_id = self.context.player_id
        self.context.lobby_code = code
        self._host = HostAuthority(self.store, code, player_id, self.config, self.rng, self.journal)
        self._clues = ClueProtocol(self.store, code, self.config.clue_max_length)
        self._unsubscribe = self.store.subscribe(lobby_path(code), self._on_snapshot, self._on_error)
        self._ticker = asyncio.create_task(self._tick_loop())

    def _teardown(self) -> list[asyncio.Task]:
        """Drop the subscription and cancel the ticker and duty tasks."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = list(self._duty_tasks)
        if self._ticker is not None and self._ticker is not asyncio.current_task():
            tasks.append(self._ticker)
        self._ticker = None
        for task in tasks:
            task.cancel()
        self._duty_tasks.clear()

        self.context.lobby_code = None
        self.context.is_host = False
        self._host = None
        self._clues = None
        self._lobby = None
        self.machine.reset()
        return tasks

    def _on_snapshot(self, data: Optional[dict[str, Any]]) -> None:
        code = self.context.lobby_code
        if code is None:
            return
        lobby = Lobby.from_snapshot(code, data)
        if lobby is None:
            self._vanish(LobbyVanished(code))
            return
        if self.context.player_id not in lobby.players:
            logger.info("%s is no longer in lobby %s", self.context.player_id, code)
            self._teardown()
            self._publish(WELCOME_VIEW)
            return

        self._lobby = lobby
        self.context.is_host = lobby.host == self.context.player_id
        view = self.machine.derive(lobby, self.context.player_id, self.context.is_host)
        self._after_derive(view)

    def _on_error(self, error: Exception) -> None:
        logger.error("Lobby subscription failed: %s", error)

    def _vanish(self, error: LobbyVanished) -> None:
        logger.info("%s", error)
        self._teardown()
        self._publish(WELCOME_VIEW)

    def _refresh(self) -> None:
        if self.context.in_lobby:
            self._after_derive(self.machine.tick())

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            view = self.machine.tick()
            for name in self.machine.timers.expired(self.clock()):
                logger.debug("Countdown %s ran out in lobby %s", name, self.context.lobby_code)
            self._after_derive(view)

    def _after_derive(self, view: ClientView) -> None:
        self._publish(view)
        if not self.context.is_host:
            return
        for duty in self.machine.take_duties(view):
            task = asyncio.create_task(self._run_duty(duty))
            self._duty_tasks.add(task)
            task.add_done_callback(self._duty_tasks.discard)

    async def _run_duty(self, duty: Duty) -> None:
        host = self._host
        if host is None:
            return
        duties = {
            DutyKind.PUBLISH_TOPIC_DECISION: host.publish_topic_decision,
            DutyKind.START_DISCUSSION: host.start_discussion,
            DutyKind.OPEN_VOTING: host.open_voting,
            DutyKind.PUBLISH_RESULTS: host.publish_results,
        }
        try:
            await duties[duty.kind]()
        except ChameleonError as e:
            logger.warning("Host duty %s failed, retrying on the next tick: %s", duty.kind.name, e)
            self.machine.release(duty)

    def _publish(self, view: ClientView) -> None:
        if self.on_view is not None:
            self.on_view(view)
        for predicate, future in list(self._waiters):
            if not future.done() and predicate(view):
                future.set_result(view)
