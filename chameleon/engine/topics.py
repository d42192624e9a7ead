"""Random draws from the topic catalogue."""

import random
from typing import Optional


def draw_ballot(
    topics: dict[str, list[str]],
    count: int = 5,
    rng: Optional[random.Random] = None,
) -> list[str]:
    """Pick `count` distinct topics in random order for a topic vote."""
    rng = rng or random.Random()
    names = list(topics)
    rng.shuffle(names)
    return names[:min(count, len(names))]


def draw_secret_word(
    topics: dict[str, list[str]],
    topic: str,
    rng: Optional[random.Random] = None,
) -> str:
    """Draw the round's secret word uniformly from a topic's word list."""
    if topic not in topics:
        raise ValueError(f"Unknown topic: {topic}. Available: {list(topics.keys())}")
    rng = rng or random.Random()
    return rng.choice(topics[topic])
