"""Vote counting shared by the topic vote and the player vote."""

import random
from collections import Counter
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TallyResult:
    """Counted votes and the chosen winner."""
    counts: dict[str, int]
    winners: list[str]  # every choice holding the maximum count
    winner: Optional[str]

    @property
    def tied(self) -> bool:
        return len(self.winners) > 1

    @property
    def top_count(self) -> int:
        return self.counts[self.winner] if self.winner is not None else 0


def tally(votes: dict[str, str], rng: Optional[random.Random] = None) -> TallyResult:
    """Count votes and pick the majority choice.

    Ties are broken uniformly at random among the top choices rather than by
    order of appearance.

    Args:
        votes: Mapping of voter id to chosen option.
        rng: Random source for the tie-break.

    Returns:
        The tally. `winner` is None when there are no votes.
    """
    counts = Counter(votes.values())
    if not counts:
        return TallyResult(counts={}, winners=[], winner=None)

    top = max(counts.values())
    winners = [choice for choice, count in counts.items() if count == top]
    if len(winners) == 1:
        winner = winners[0]
    else:
        winner = (rng or random.Random()).choice(winners)
    return TallyResult(counts=dict(counts), winners=winners, winner=winner)
