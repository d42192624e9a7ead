"""Tests for lobby membership."""

import asyncio
import random
import unittest

from chameleon.config import GameConfig
from chameleon.engine.lobby import create_lobby, join_lobby, leave_lobby
from chameleon.errors import PreconditionFailed, ValidationError
from chameleon.store.base import lobby_path
from chameleon.store.memory import InMemoryLobbyStore

from .helpers import CODE, FakeClock, T0, lobby_record


class LobbyMembershipTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.clock = FakeClock()
        self.store = InMemoryLobbyStore(clock=self.clock)
        self.config = GameConfig()

    async def test_create_with_random_code(self) -> None:
        code = await create_lobby(self.store, self.config, "host1", "Alice", rng=random.Random(1))
        self.assertEqual(len(code), self.config.lobby_code_length)
        self.assertTrue(code.isalpha() and code.isupper())

        lobby = await self.store.get(lobby_path(code))
        self.assertEqual(lobby["host"], "host1")
        self.assertEqual(lobby["status"], "waiting")
        self.assertEqual(lobby["createdAt"], T0)
        self.assertTrue(lobby["players"]["host1"]["isHost"])

    async def test_custom_code_is_unique(self) -> None:
        code = await create_lobby(self.store, self.config, "host1", "Alice", code="fox")
        self.assertEqual(code, "FOX")
        with self.assertRaisesRegex(PreconditionFailed, "already taken"):
            await create_lobby(self.store, self.config, "host2", "Bob", code="FOX")
        self.assertEqual((await self.store.get(lobby_path("FOX")))["host"], "host1")

    async def test_custom_code_shape(self) -> None:
        with self.assertRaises(ValidationError):
            await create_lobby(self.store, self.config, "host1", "Alice", code="AB")
        with self.assertRaises(ValidationError):
            await create_lobby(self.store, self.config, "host1", "Alice", code="AB12")

    async def test_text_clue_setting(self) -> None:
        code = await create_lobby(self.store, self.config, "host1", "Alice", code="CLUES", text_clues=True)
        lobby = await self.store.get(lobby_path(code))
        self.assertTrue(lobby["settings"]["textClueModeEnabled"])

    async def test_join(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B"]))
        await join_lobby(self.store, self.config, CODE.lower(), "C", "Carol")
        players = (await self.store.get(lobby_path(CODE)))["players"]
        self.assertEqual(players["C"]["name"], "Carol")
        self.assertFalse(players["C"]["isHost"])

    async def test_join_missing_lobby(self) -> None:
        with self.assertRaisesRegex(PreconditionFailed, "Lobby not found"):
            await join_lobby(self.store, self.config, "NOPE", "C", "Carol")

    async def test_join_started_game(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B", "C"], status="voting", game={"round": 1}))
        with self.assertRaisesRegex(PreconditionFailed, "Game already started"):
            await join_lobby(self.store, self.config, CODE, "D", "Dave")

    async def test_join_full_lobby(self) -> None:
        config = GameConfig(max_players=3)
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B", "C"]))
        with self.assertRaisesRegex(PreconditionFailed, "Lobby is full"):
            await join_lobby(self.store, config, CODE, "D", "Dave")

    async def test_rejoin_is_a_no_op(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B"]))
        commits = self.store.commits
        await join_lobby(self.store, self.config, CODE, "B", "Bob")
        self.assertEqual(self.store.commits, commits)
        self.assertEqual(len((await self.store.get(lobby_path(CODE)))["players"]), 2)

    async def test_host_leaving_hands_over_to_earliest_joiner(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B", "C"]))

        new_host = await leave_lobby(self.store, CODE, "A")

        self.assertEqual(new_host, "B")
        lobby = await self.store.get(lobby_path(CODE))
        self.assertEqual(lobby["host"], "B")
        self.assertTrue(lobby["players"]["B"]["isHost"])
        self.assertFalse(lobby["players"]["C"]["isHost"])
        self.assertNotIn("A", lobby["players"])

    async def test_guest_leaving_keeps_host(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B", "C"]))
        self.assertEqual(await leave_lobby(self.store, CODE, "C"), "A")

    async def test_leaving_removes_votes(self) -> None:
        game = {"round": 1, "votes": {"A": "Food", "B": "Food"}}
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B", "C"], status="voting", game=game))
        await leave_lobby(self.store, CODE, "B")
        lobby = await self.store.get(lobby_path(CODE))
        self.assertEqual(lobby["game"]["votes"], {"A": "Food"})

    async def test_last_player_deletes_lobby(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A"]))
        self.assertIsNone(await leave_lobby(self.store, CODE, "A"))
        self.assertFalse(await self.store.exists(lobby_path(CODE)))

    async def test_concurrent_departures(self) -> None:
        await self.store.set(lobby_path(CODE), lobby_record(["A", "B", "C", "D"]))
        await asyncio.gather(
            leave_lobby(self.store, CODE, "A"),
            leave_lobby(self.store, CODE, "B"),
        )
        lobby = await self.store.get(lobby_path(CODE))
        self.assertEqual(sorted(lobby["players"]), ["C", "D"])
        self.assertEqual(lobby["host"], "C")
        self.assertTrue(lobby["players"]["C"]["isHost"])


if __name__ == "__main__":
    unittest.main()
