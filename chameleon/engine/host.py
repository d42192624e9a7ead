"""Phase transitions only the lobby host performs."""

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..config import GameConfig
from ..errors import PreconditionFailed, TransactionNotCommitted
from ..models import Lobby, LobbyStatus, RoundResults
from ..reporting.markdown_logger import MarkdownLogger
from ..store.base import ABORT, SERVER_TIMESTAMP, LobbyStore, lobby_path
from .clues import new_clue_state
from .tally import TallyResult, tally
from .topics import draw_ballot, draw_secret_word

logger = logging.getLogger(__name__)

# Transaction body: (parsed lobby, raw record) -> new record or ABORT
RoundEdit = Callable[[Lobby, dict[str, Any]], Any]


@dataclass
class TopicDecision:
    """What the host published at the end of the topic vote."""
    topic: str
    chameleon: str
    secret_word: str
    votes: dict[str, str]
    tally: TallyResult


class HostAuthority:
    """Performs the host-only writes for one lobby.

    Every write is a transaction on the whole lobby record that re-checks, on
    the freshest value, that the caller is still host and that the phase
    precondition still holds. A duplicated or late call (two devices both
    believing they are host, a retry after reconnect) therefore aborts
    instead of publishing twice.
    """

    def __init__(
        self,
        store: LobbyStore,
        code: str,
        player_id: str,
        config: GameConfig,
        rng: Optional[random.Random] = None,
        journal: Optional[MarkdownLogger] = None,
    ):
        """Initialize the host authority.

        Args:
            store: Shared store.
            code: Lobby code.
            player_id: Id of the local player; writes abort unless it is host.
            config: Game configuration (topics, durations, player limits).
            rng: Random source for ballots, tie-breaks, chameleon and word.
            journal: Optional markdown logger for round review.
        """
        self.store = store
        self.code = code
        self.player_id = player_id
        self.config = config
        self.rng = rng or random.Random()
        self.journal = journal

    async def _transact(self, action: str, edit: RoundEdit) -> Lobby:
        """Run `edit` as a host-checked transaction and return the committed lobby."""
        reasons: list[str] = []

        def fn(current: Optional[dict[str, Any]]) -> Any:
            reasons.clear()
            lobby = Lobby.from_snapshot(self.code, current)
            if lobby is None:
                reasons.append("Lobby not found")
                return ABORT
            if lobby.host != self.player_id:
                reasons.append("Only the host can do that")
                return ABORT
            try:
                return edit(lobby, current)
            except PreconditionFailed as e:
                reasons.append(str(e))
                return ABORT

        result = await self.store.transaction(lobby_path(self.code), fn)
        if not result.committed:
            reason = reasons[0] if reasons else "lost a concurrent write"
            logger.debug("Host %s in lobby %s not committed: %s", action, self.code, reason)
            raise TransactionNotCommitted(lobby_path(self.code), reason, aborted=bool(reasons))
        return Lobby.from_snapshot(self.code, result.value)

    def _journal_round(self, lobby: Lobby) -> Optional[MarkdownLogger]:
        if self.journal is None or lobby.game is None:
            return None
        self.journal.start_game(f"lobby_{self.code}_round_{lobby.game.round}")
        return self.journal

    # --- user-initiated ---

    async def start_round(self) -> list[str]:
        """Open a topic vote with a fresh ballot, replacing any previous round.

        Returns:
            The ballot.

        Raises:
            PreconditionFailed: Not host, game in progress, or too few players.
        """
        ballot = draw_ballot(self.config.topics, self.config.topics_per_ballot, self.rng)

        def edit(lobby: Lobby, current: dict[str, Any]) -> Any:
            if lobby.status not in (LobbyStatus.WAITING, LobbyStatus.FINISHED):
                raise PreconditionFailed("Game already started")
            if len(lobby.players) < self.config.min_players:
                raise PreconditionFailed(f"Need at least {self.config.min_players} players")
            round_number = lobby.rounds_played + 1
            return {
                **current,
                "status": LobbyStatus.VOTING.value,
                "roundsPlayed": round_number,
                "game": {
                    "round": round_number,
                    "startedAt": SERVER_TIMESTAMP,
                    "topics": ballot,
                    "discussionDuration": self.config.discussion_time,
                    "voteLockTime": self.config.vote_lock_time,
                },
            }

        try:
            lobby = await self._transact("start round", edit)
        except TransactionNotCommitted as e:
            raise PreconditionFailed(e.reason) from e

        logger.info("Round %d started in lobby %s: %s", lobby.game.round, self.code, ballot)
        journal = self._journal_round(lobby)
        if journal:
            journal.log_setup(
                [{"id": pid, "name": lobby.player_name(pid), "is_host": pid == lobby.host}
                 for pid in lobby.player_ids],
                text_clues=lobby.settings.text_clue_mode_enabled,
            )
            journal.log_phase_start("topic_voting")
        return ballot

    async def reset_round(self) -> None:
        """Drop the round and send everyone back to the lobby screen.

        Raises:
            PreconditionFailed: Caller is not host or the lobby is gone.
        """
        def edit(lobby: Lobby, current: dict[str, Any]) -> Any:
            updated = {**current, "status": LobbyStatus.WAITING.value}
            updated.pop("game", None)
            return updated

        try:
            await self._transact("reset round", edit)
        except TransactionNotCommitted as e:
            raise PreconditionFailed(e.reason) from e
        logger.info("Lobby %s reset for a new round", self.code)

    # --- duties triggered by the state machine ---

    async def publish_topic_decision(self) -> Optional[TopicDecision]:
        """Close the topic vote: pick topic, chameleon and secret word.

        Returns:
            The decision, or None if the vote was not complete or someone
            else already published it.

        Raises:
            TransactionNotCommitted: The write was lost to concurrent writers.
        """
        decision: list[TopicDecision] = []

        def edit(lobby: Lobby, current: dict[str, Any]) -> Any:
            decision.clear()
            game = lobby.game
            if lobby.status != LobbyStatus.VOTING or game is None or game.selected_topic:
                raise PreconditionFailed("Topic vote is not open")
            votes = lobby.current_votes(game.votes)
            if not lobby.everyone_voted(votes):
                raise PreconditionFailed("Not everyone has voted")

            result = tally(votes, self.rng)
            topic = result.winner
            if topic not in self.config.topics:
                raise PreconditionFailed(f"Unknown topic {topic!r}")
            chameleon = self.rng.choice(lobby.player_ids)
            secret_word = draw_secret_word(self.config.topics, topic, self.rng)
            decision.append(TopicDecision(topic, chameleon, secret_word, votes, result))

            updated_game = {k: v for k, v in current["game"].items() if k != "votes"}
            updated_game.update({
                "selectedTopic": topic,
                "chameleon": chameleon,
                "secretWord": secret_word,
                "rolesAssignedAt": SERVER_TIMESTAMP,
            })
            return {**current, "status": LobbyStatus.PLAYING.value, "game": updated_game}

        try:
            lobby = await self._transact("publish topic decision", edit)
        except TransactionNotCommitted as e:
            if not e.aborted:
                raise
            return None

        chosen = decision[0]
        logger.info(
            "Lobby %s topic %r (%s), roles assigned",
            self.code, chosen.topic, chosen.tally.counts,
        )
        journal = self._journal_round(lobby)
        if journal:
            journal.log_topic_vote(
                lobby.game.topics,
                {lobby.player_name(v): t for v, t in chosen.votes.items()},
                chosen.tally.counts,
                chosen.topic,
                tied=chosen.tally.tied,
            )
            journal.log_roles(lobby.player_name(chosen.chameleon), chosen.topic, chosen.secret_word)
            journal.log_phase_start("role_reveal")
        return chosen

    async def start_discussion(self) -> bool:
        """Anchor the discussion countdown and, in clue mode, the turn order.

        Returns:
            True if this call started the discussion.

        Raises:
            TransactionNotCommitted: The write was lost to concurrent writers.
        """
        def edit(lobby: Lobby, current: dict[str, Any]) -> Any:
            game = lobby.game
            if lobby.status != LobbyStatus.PLAYING or game is None or game.chameleon is None:
                raise PreconditionFailed("Roles are not assigned")
            if game.discussion_started_at is not None:
                raise PreconditionFailed("Discussion already started")

            updated_game = {**current["game"], "discussionStartedAt": SERVER_TIMESTAMP}
            if lobby.settings.text_clue_mode_enabled:
                updated_game["clueState"] = new_clue_state(lobby.player_ids)
            return {**current, "game": updated_game}

        try:
            lobby = await self._transact("start discussion", edit)
        except TransactionNotCommitted as e:
            if not e.aborted:
                raise
            return False

        logger.info("Discussion started in lobby %s", self.code)
        journal = self._journal_round(lobby)
        if journal:
            journal.log_phase_start("discussion")
        return True

    async def open_voting(self) -> bool:
        """Anchor the vote-lock countdown, only if it is not anchored yet.

        Returns:
            True if this call opened voting; False for a late or duplicate call.

        Raises:
            TransactionNotCommitted: The write was lost to concurrent writers.
        """
        def edit(lobby: Lobby, current: dict[str, Any]) -> Any:
            game = lobby.game
            if lobby.status != LobbyStatus.PLAYING or game is None or game.chameleon is None:
                raise PreconditionFailed("Roles are not assigned")
            if game.voting_opened_at is not None:
                raise PreconditionFailed("Voting already open")
            return {**current, "game": {**current["game"], "votingOpenedAt": SERVER_TIMESTAMP}}

        try:
            lobby = await self._transact("open voting", edit)
        except TransactionNotCommitted as e:
            if not e.aborted:
                raise
            return False

        logger.info("Voting opened in lobby %s", self.code)
        journal = self._journal_round(lobby)
        if journal:
            clue_state = lobby.game.clue_state
            if clue_state is not None:
                journal.log_clues([
                    (lobby.player_name(pid), clue_state.clues[pid].text)
                    for pid in clue_state.turn_order
                    if pid in clue_state.clues
                ])
            journal.log_phase_start("voting")
        return True

    async def publish_results(self) -> Optional[RoundResults]:
        """Close the player vote and finish the round.

        Returns:
            The results, or None if the vote was not complete or already
            published.

        Raises:
            TransactionNotCommitted: The write was lost to concurrent writers.
        """
        def edit(lobby: Lobby, current: dict[str, Any]) -> Any:
            game = lobby.game
            if lobby.status != LobbyStatus.PLAYING or game is None or game.results is not None:
                raise PreconditionFailed("Player vote is not open")
            votes = lobby.current_votes(game.player_votes)
            if not lobby.everyone_voted(votes):
                raise PreconditionFailed("Not everyone has voted")

            result = tally(votes, self.rng)
            results = {
                "chameleonId": game.chameleon,
                "chameleonName": lobby.player_name(game.chameleon),
                "mostVotedId": result.winner,
                "mostVotedName": lobby.player_name(result.winner),
                "chameleonCaught": result.winner == game.chameleon,
                "secretWord": game.secret_word,
                "votes": result.counts,
                "tied": result.tied,
            }
            return {
                **current,
                "status": LobbyStatus.FINISHED.value,
                "game": {**current["game"], "results": results},
            }

        try:
            lobby = await self._transact("publish results", edit)
        except TransactionNotCommitted as e:
            if not e.aborted:
                raise
            return None

        results = lobby.game.results
        logger.info(
            "Lobby %s round over: %s accused, chameleon %s",
            self.code, results.most_voted_name,
            "caught" if results.chameleon_caught else "escaped",
        )
        journal = self._journal_round(lobby)
        if journal:
            journal.log_vote(
                {lobby.player_name(v): lobby.player_name(t) for v, t in lobby.game.player_votes.items()},
                results.most_voted_name,
                tied=results.tied,
            )
            journal.log_game_end(results.chameleon_name, results.chameleon_caught, results.secret_word)
        return results
