"""Tests for anchored countdowns."""

import unittest

from chameleon.engine.timer import CountdownRegistry, ServerClock, remaining


class RemainingTests(unittest.TestCase):
    def test_full_duration_at_anchor(self) -> None:
        self.assertEqual(remaining(1000, 10, 1000), 10)

    def test_rounds_up_partial_seconds(self) -> None:
        self.assertEqual(remaining(0, 10, 9001), 1)
        self.assertEqual(remaining(0, 10, 500), 10)

    def test_zero_at_and_after_deadline(self) -> None:
        self.assertEqual(remaining(0, 10, 10_000), 0)
        self.assertEqual(remaining(0, 10, 50_000), 0)

    def test_never_increases(self) -> None:
        values = [remaining(5000, 30, now) for now in range(0, 40_000, 250)]
        self.assertEqual(values, sorted(values, reverse=True))
        self.assertTrue(all(v >= 0 for v in values))

    def test_same_anchor_same_value_on_every_client(self) -> None:
        anchor = 1_700_000_000_000
        late_joiner = ServerClock(lambda: anchor + 60_000 - 2500, offset_ms=2500)
        on_time = ServerClock(lambda: anchor + 60_000)
        self.assertEqual(remaining(anchor, 180, late_joiner()), remaining(anchor, 180, on_time()))
        self.assertEqual(remaining(anchor, 180, on_time()), 120)


class ServerClockTests(unittest.TestCase):
    def test_applies_offset(self) -> None:
        clock = ServerClock(lambda: 100, offset_ms=50)
        self.assertEqual(clock(), 150)
        clock.offset_ms = -20
        self.assertEqual(clock(), 80)


class CountdownRegistryTests(unittest.TestCase):
    def test_same_anchor_is_not_restarted(self) -> None:
        timers = CountdownRegistry()
        first = timers.activate("discussion", 1000, 180)
        second = timers.activate("discussion", 1000, 180)
        self.assertIs(first, second)
        self.assertEqual(timers.activations, 1)

    def test_new_anchor_replaces(self) -> None:
        timers = CountdownRegistry()
        timers.activate("discussion", 1000, 180)
        timers.activate("discussion", 5000, 180)
        self.assertEqual(timers.activations, 2)
        self.assertEqual(timers.get("discussion").anchor_ms, 5000)
        self.assertEqual(len(timers), 1)

    def test_expired_reported_once_per_anchor(self) -> None:
        timers = CountdownRegistry()
        timers.activate("vote_lock", 0, 15)
        self.assertEqual(timers.expired(10_000), [])
        self.assertEqual(timers.expired(15_000), ["vote_lock"])
        self.assertEqual(timers.expired(20_000), [])
        timers.activate("vote_lock", 30_000, 15)
        self.assertEqual(timers.expired(45_000), ["vote_lock"])

    def test_dropping_a_countdown_forgets_it_fired(self) -> None:
        timers = CountdownRegistry()
        timers.activate("vote_lock", 0, 15)
        self.assertEqual(timers.expired(15_000), ["vote_lock"])
        timers.keep_only(set())
        timers.activate("vote_lock", 0, 15)
        self.assertEqual(timers.expired(15_000), ["vote_lock"])
        timers.activate("vote_lock", 30_000, 15)
        self.assertEqual(timers._fired, set())

    def test_keep_only_and_cancel(self) -> None:
        timers = CountdownRegistry()
        timers.activate("discussion", 0, 180)
        timers.activate("ready_to_vote", 0, 15)
        timers.activate("vote_lock", 0, 15)
        timers.keep_only({"discussion", "ready_to_vote"})
        self.assertEqual(sorted(timers.names), ["discussion", "ready_to_vote"])
        timers.cancel("discussion")
        self.assertNotIn("discussion", timers)
        timers.cancel_all()
        self.assertEqual(len(timers), 0)
        self.assertEqual(timers.snapshot(0), {})

    def test_snapshot(self) -> None:
        timers = CountdownRegistry()
        timers.activate("discussion", 0, 180)
        timers.activate("ready_to_vote", 0, 15)
        self.assertEqual(timers.snapshot(20_000), {"discussion": 160, "ready_to_vote": 0})


if __name__ == "__main__":
    unittest.main()
