"""Tests for the markdown round journal."""

import tempfile
import unittest
from pathlib import Path

from chameleon.reporting.markdown_logger import MarkdownLogger


class MarkdownLoggerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.logger = MarkdownLogger(base_dir=self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_start_game_creates_directory(self) -> None:
        game_dir = self.logger.start_game("round_1")
        self.assertEqual(game_dir, Path(self.tmp.name) / "round_1")
        self.assertIn("# Chameleon Round - round_1", (game_dir / "game_state.md").read_text())

    def test_start_game_again_keeps_log(self) -> None:
        self.logger.start_game("round_1")
        self.logger.log_setup([{"id": "a", "name": "Ann", "is_host": True}])
        self.logger.start_game("round_1")
        self.assertIn("| Ann | a | Yes |", (self.logger.game_dir / "game_state.md").read_text())

    def test_full_round(self) -> None:
        self.logger.start_game("round_1")
        self.logger.log_setup(
            [{"id": "a", "name": "Ann", "is_host": True}, {"id": "b", "name": "Ben"}],
            text_clues=True,
        )
        self.logger.log_phase_start("topic_voting")
        self.logger.log_topic_vote(
            ["Food", "Space"], {"Ann": "Food", "Ben": "Space"}, {"Food": 1, "Space": 1}, "Space", tied=True
        )
        self.logger.log_roles("Ben", "Space", "Comet")
        self.logger.log_clues([("Ann", "Tail"), ("Ben", "Far away")])
        self.logger.log_vote({"Ann": "Ben", "Ben": "Ann"}, "Ben", tied=True)
        self.logger.log_game_end("Ben", caught=True, secret_word="Comet")

        game_dir = self.logger.game_dir
        state = (game_dir / "game_state.md").read_text()
        self.assertIn("## Topic Voting", state)
        self.assertIn("Topic selected: **Space**", state)
        self.assertIn("## Winner: PLAYERS", state)
        self.assertIn("(random tie-break)", (game_dir / "votes" / "topics.md").read_text())
        self.assertIn("**Secret word**: Comet", (game_dir / "roles.md").read_text())
        self.assertIn("> Far away", (game_dir / "clues.md").read_text())
        self.assertIn("**Ben** received the most votes (tie broken at random).",
                      (game_dir / "votes" / "players.md").read_text())


if __name__ == "__main__":
    unittest.main()
