"""Tests for round-robin clue submission."""

import asyncio
import unittest

from chameleon.engine.clues import ClueProtocol, new_clue_state, normalize_clue
from chameleon.errors import ValidationError
from chameleon.store.base import clue_state_path
from chameleon.store.memory import InMemoryLobbyStore

from .helpers import CODE, FakeClock


class NormalizeClueTests(unittest.TestCase):
    def test_trims_and_collapses_whitespace(self) -> None:
        self.assertEqual(normalize_clue("  has   a  mane "), "has a mane")

    def test_rejects_empty(self) -> None:
        with self.assertRaises(ValidationError):
            normalize_clue("   ")

    def test_rejects_long(self) -> None:
        self.assertEqual(len(normalize_clue("x" * 60)), 60)
        with self.assertRaises(ValidationError):
            normalize_clue("x" * 61)


class ClueProtocolTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.clock = FakeClock()
        self.store = InMemoryLobbyStore(clock=self.clock)
        self.clues = ClueProtocol(self.store, CODE)

    async def state(self) -> dict:
        return await self.store.get(clue_state_path(CODE))

    async def test_turns_in_order(self) -> None:
        await self.store.set(clue_state_path(CODE), new_clue_state(["A", "B", "C"]))

        self.assertFalse(await self.clues.submit("B", "out of turn"))
        self.assertEqual((await self.state())["currentTurnIndex"], 0)

        self.assertTrue(await self.clues.submit("A", "Savanna"))
        self.assertEqual((await self.state())["currentTurnIndex"], 1)
        self.assertFalse(await self.clues.submit("A", "again"))
        self.assertFalse(await self.clues.submit("C", "ahead of B"))
        state = await self.state()
        self.assertEqual(state["currentTurnIndex"], 1)
        self.assertNotIn("C", state["clues"])

        self.assertTrue(await self.clues.submit("B", "Roar"))
        self.assertTrue(await self.clues.submit("C", "Mane"))

        state = await self.state()
        self.assertEqual(state["currentTurnIndex"], 3)
        self.assertTrue(state["completed"])
        self.assertEqual(state["clues"]["A"]["text"], "Savanna")
        self.assertEqual(state["clues"]["A"]["submittedAt"], self.clock.now)
        self.assertFalse(await self.clues.submit("C", "late"))

    async def test_concurrent_retries_accept_one(self) -> None:
        await self.store.set(clue_state_path(CODE), new_clue_state(["A", "B"]))
        results = await asyncio.gather(
            self.clues.submit("A", "first"),
            self.clues.submit("A", "second"),
        )
        self.assertEqual(sorted(results), [False, True])
        state = await self.state()
        self.assertEqual(state["currentTurnIndex"], 1)
        self.assertEqual(list(state["clues"]), ["A"])

    async def test_missing_record(self) -> None:
        self.assertFalse(await self.clues.submit("A", "nothing here"))

    async def test_disabled_record(self) -> None:
        state = new_clue_state(["A"])
        state["enabled"] = False
        await self.store.set(clue_state_path(CODE), state)
        self.assertFalse(await self.clues.submit("A", "hello"))

    async def test_invalid_text_never_reaches_store(self) -> None:
        await self.store.set(clue_state_path(CODE), new_clue_state(["A"]))
        commits = self.store.commits
        with self.assertRaises(ValidationError):
            await self.clues.submit("A", "")
        self.assertEqual(self.store.commits, commits)


if __name__ == "__main__":
    unittest.main()
