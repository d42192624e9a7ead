"""Tests for per-player vote and ready writes."""

import unittest

from chameleon.engine.votes import cast_player_vote, cast_topic_vote, mark_ready
from chameleon.store.base import game_path, lobby_path
from chameleon.store.memory import InMemoryLobbyStore

from .helpers import CODE, FakeClock, T0, lobby_record

PLAYERS = ["A", "B", "C"]


class VoteWriteTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = InMemoryLobbyStore(clock=FakeClock())

    async def seed(self, status: str, game=None) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(PLAYERS, status=status, game=game))

    async def game(self):
        return await self.store.get(game_path(CODE))

    async def test_topic_vote_recorded_once(self) -> None:
        await self.seed("voting", {"round": 1, "startedAt": T0, "topics": ["Food", "Space"]})

        self.assertTrue(await cast_topic_vote(self.store, CODE, "A", "Food"))
        self.assertFalse(await cast_topic_vote(self.store, CODE, "A", "Space"))
        self.assertTrue(await cast_topic_vote(self.store, CODE, "B", "Space"))
        self.assertEqual((await self.game())["votes"], {"A": "Food", "B": "Space"})

    async def test_topic_vote_after_decision_is_dropped(self) -> None:
        game = {
            "round": 1, "startedAt": T0, "topics": ["Food"],
            "selectedTopic": "Food", "chameleon": "B", "secretWord": "Pizza", "rolesAssignedAt": T0,
        }
        await self.seed("playing", game)

        self.assertFalse(await cast_topic_vote(self.store, CODE, "C", "Food"))
        self.assertNotIn("votes", await self.game())

    async def test_player_vote_after_reset_is_dropped(self) -> None:
        await self.seed("waiting")

        self.assertFalse(await cast_player_vote(self.store, CODE, "A", "B"))
        self.assertNotIn("game", await self.store.get(lobby_path(CODE)))

    async def test_player_vote_after_results_is_dropped(self) -> None:
        game = {
            "round": 1, "selectedTopic": "Food", "chameleon": "B", "votingOpenedAt": T0,
            "playerVotes": {"A": "B", "B": "A"}, "results": {"chameleonId": "B"},
        }
        await self.seed("finished", game)

        self.assertFalse(await cast_player_vote(self.store, CODE, "C", "A"))
        self.assertEqual((await self.game())["playerVotes"], {"A": "B", "B": "A"})

    async def test_player_vote_recorded_once(self) -> None:
        game = {"round": 1, "selectedTopic": "Food", "chameleon": "B", "votingOpenedAt": T0}
        await self.seed("playing", game)

        self.assertTrue(await cast_player_vote(self.store, CODE, "A", "B"))
        self.assertFalse(await cast_player_vote(self.store, CODE, "A", "C"))
        self.assertEqual((await self.game())["playerVotes"], {"A": "B"})

    async def test_ready_only_during_discussion(self) -> None:
        game = {"round": 1, "selectedTopic": "Food", "chameleon": "B", "rolesAssignedAt": T0}
        await self.seed("playing", game)
        self.assertFalse(await mark_ready(self.store, CODE, "A"))

        await self.store.update(game_path(CODE), {"discussionStartedAt": T0})
        self.assertTrue(await mark_ready(self.store, CODE, "A"))
        self.assertEqual((await self.game())["readyToVote"], {"A": True})

        await self.store.update(game_path(CODE), {"votingOpenedAt": T0})
        self.assertFalse(await mark_ready(self.store, CODE, "B"))


if __name__ == "__main__":
    unittest.main()
