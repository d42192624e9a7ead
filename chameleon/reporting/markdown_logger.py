"""Markdown logger for lobby rounds."""

from datetime import datetime
from pathlib import Path
from typing import Optional


class MarkdownLogger:
    """Writes round events (ballot, roles, clues, votes, results) to markdown files."""

    def __init__(self, base_dir: str = "games"):
        """Initialize the logger.

        Args:
            base_dir: Base directory for round logs.
        """
        self.base_dir = Path(base_dir)
        self.game_dir: Optional[Path] = None
        self.game_id: Optional[str] = None

    def start_game(self, game_id: Optional[str] = None) -> Path:
        """Start logging a round.

        Calling again with the current id keeps the existing files.

        Args:
            game_id: Optional round identifier. If not provided, uses timestamp.

        Returns:
            Path to the round directory.
        """
        if game_id is None:
            timestamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
            game_id = f"game_{timestamp}"

        if game_id == self.game_id and self.game_dir is not None:
            return self.game_dir

        self.game_id = game_id
        self.game_dir = self.base_dir / game_id
        self.game_dir.mkdir(parents=True, exist_ok=True)

        self._write_game_header()

        return self.game_dir

    @property
    def _state_file(self) -> Path:
        return self.game_dir / "game_state.md"

    def _write_game_header(self) -> None:
        with open(self._state_file, "w") as f:
            f.write(f"# Chameleon Round - {self.game_id}\n\n")
            f.write(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
            f.write("---\n\n")

    def log_setup(self, players: list[dict], text_clues: bool = False) -> None:
        """Log the players taking part.

        Args:
            players: Player info dicts (id, name, is_host) in join order.
            text_clues: Whether text-clue mode is on.
        """
        with open(self._state_file, "a") as f:
            f.write("## Players\n\n")
            f.write("| Player | Id | Host |\n")
            f.write("|--------|----|------|\n")
            for p in players:
                host = "Yes" if p.get("is_host") else ""
                f.write(f"| {p['name']} | {p['id']} | {host} |\n")
            f.write(f"\nText clues: {'on' if text_clues else 'off'}\n")
            f.write("\n---\n\n")

    def log_phase_start(self, phase: str) -> None:
        """Log the start of a phase.

        Args:
            phase: Phase name (e.g., "topic_voting", "discussion").
        """
        with open(self._state_file, "a") as f:
            f.write(f"## {phase.replace('_', ' ').title()}\n\n")

    def log_topic_vote(
        self,
        ballot: list[str],
        votes: dict[str, str],
        counts: dict[str, int],
        selected: str,
        tied: bool = False,
    ) -> None:
        """Log the topic ballot and its outcome.

        Args:
            ballot: Topics offered.
            votes: Mapping of voter name to topic.
            counts: Votes per topic.
            selected: Winning topic.
            tied: True if the winner came from a random tie-break.
        """
        votes_dir = self.game_dir / "votes"
        votes_dir.mkdir(exist_ok=True)

        with open(votes_dir / "topics.md", "w") as f:
            f.write("# Topic Vote\n\n")
            f.write("## Ballot\n\n")
            for topic in ballot:
                f.write(f"- {topic}: {counts.get(topic, 0)} votes\n")

            f.write("\n## Individual Votes\n\n")
            f.write("| Voter | Topic |\n")
            f.write("|-------|-------|\n")
            for voter, topic in sorted(votes.items()):
                f.write(f"| {voter} | {topic} |\n")

            f.write("\n## Result\n\n")
            f.write(f"**{selected}**")
            f.write(" (random tie-break)\n" if tied else "\n")

        with open(self._state_file, "a") as f:
            f.write(f"Topic selected: **{selected}**\n\n")

    def log_roles(self, chameleon: str, topic: str, secret_word: str) -> None:
        """Log role assignment (for review - not visible to players).

        Args:
            chameleon: Name of the chameleon.
            topic: Selected topic.
            secret_word: The word everyone but the chameleon sees.
        """
        with open(self.game_dir / "roles.md", "w") as f:
            f.write("# Roles\n\n")
            f.write("*This file records the hidden roles for round review*\n\n")
            f.write("---\n\n")
            f.write(f"**Chameleon**: {chameleon}\n\n")
            f.write(f"**Topic**: {topic}\n\n")
            f.write(f"**Secret word**: {secret_word}\n")

    def log_clues(self, clues: list[tuple[str, str]]) -> None:
        """Log the text clues in turn order.

        Args:
            clues: (player name, clue) pairs.
        """
        with open(self.game_dir / "clues.md", "w") as f:
            f.write("# Clues\n\n")
            for speaker, text in clues:
                f.write(f"**{speaker}**:\n")
                f.write(f"> {text}\n\n")

        with open(self._state_file, "a") as f:
            f.write("*See [clues.md](./clues.md) for the clues given*\n\n")

    def log_vote(
        self,
        votes: dict[str, str],
        most_voted: Optional[str],
        tied: bool = False,
    ) -> None:
        """Log the player vote.

        Args:
            votes: Mapping of voter name to voted-for name.
            most_voted: Name of the most voted player.
            tied: True if the top count was shared.
        """
        votes_dir = self.game_dir / "votes"
        votes_dir.mkdir(exist_ok=True)

        vote_counts: dict[str, list[str]] = {}
        for voter, target in votes.items():
            vote_counts.setdefault(target, []).append(voter)

        with open(votes_dir / "players.md", "w") as f:
            f.write("# Voting\n\n")

            f.write("## Individual Votes\n\n")
            f.write("| Voter | Voted For |\n")
            f.write("|-------|----------|\n")
            for voter, target in sorted(votes.items()):
                f.write(f"| {voter} | {target} |\n")

            f.write("\n## Vote Totals\n\n")
            for target, voters in sorted(vote_counts.items(), key=lambda x: -len(x[1])):
                f.write(f"- **{target}**: {len(voters)} votes ({', '.join(voters)})\n")

            f.write("\n## Result\n\n")
            f.write(f"**{most_voted}** received the most votes")
            f.write(" (tie broken at random).\n" if tied else ".\n")

        with open(self._state_file, "a") as f:
            f.write("### Vote Result\n\n")
            f.write(f"**{most_voted}** was accused.\n\n")

    def log_game_end(self, chameleon: str, caught: bool, secret_word: Optional[str]) -> None:
        """Log the round ending.

        Args:
            chameleon: Name of the chameleon.
            caught: Whether the players caught the chameleon.
            secret_word: The round's secret word.
        """
        with open(self._state_file, "a") as f:
            f.write("---\n\n")
            f.write("# ROUND OVER\n\n")
            winner = "PLAYERS" if caught else "CHAMELEON"
            f.write(f"## Winner: {winner}\n\n")
            f.write(f"- Chameleon: {chameleon}\n")
            f.write(f"- Secret word: {secret_word}\n")
            f.write(f"\n\nEnded: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
