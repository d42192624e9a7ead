"""Game configuration and its YAML loader."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml

logger = logging.getLogger(__name__)

# Topic -> candidate secret words
DEFAULT_TOPICS: dict[str, list[str]] = {
    "Animals": ["Lion", "Elephant", "Giraffe", "Zebra", "Monkey", "Tiger", "Bear", "Dolphin", "Penguin", "Kangaroo"],
    "Food": ["Pizza", "Burger", "Sushi", "Pasta", "Taco", "Salad", "Sandwich", "Soup", "Steak", "Ice Cream"],
    "Colors": ["Red", "Blue", "Green", "Yellow", "Purple", "Orange", "Pink", "Black", "White", "Brown"],
    "Countries": ["USA", "Japan", "France", "Brazil", "Australia", "Canada", "Italy", "Spain", "Germany", "China"],
    "Sports": ["Soccer", "Basketball", "Tennis", "Baseball", "Swimming", "Golf", "Hockey", "Volleyball", "Cricket", "Rugby"],
    "Movies": ["Inception", "Titanic", "Avatar", "Gladiator", "Jaws", "Frozen", "Shrek", "Rocky", "Moana", "Up"],
    "TV Shows": ["Friends", "Seinfeld", "Breaking Bad", "Lost", "The Office", "Sherlock", "Stranger Things", "Narcos", "Suits", "Wednesday"],
    "Jobs": ["Doctor", "Teacher", "Engineer", "Chef", "Pilot", "Nurse", "Lawyer", "Farmer", "Firefighter", "Artist"],
    "School": ["Homework", "Exam", "Pencil", "Backpack", "Locker", "Classroom", "Recess", "Principal", "Notebook", "Chalkboard"],
    "Technology": ["Laptop", "Smartphone", "Keyboard", "Mouse", "WiFi", "Bluetooth", "Drone", "Robot", "Server", "Headphones"],
    "Video Games": ["Minecraft", "Fortnite", "Tetris", "Pac-Man", "Zelda", "Mario", "Sonic", "Pokemon", "Among Us", "Portal"],
    "Music": ["Guitar", "Piano", "Drums", "Violin", "Trumpet", "Microphone", "Concert", "Playlist", "DJ", "Singer"],
    "Transportation": ["Car", "Bus", "Train", "Bicycle", "Motorcycle", "Helicopter", "Subway", "Taxi", "Boat", "Scooter"],
    "Weather": ["Rain", "Snow", "Thunder", "Lightning", "Cloud", "Wind", "Fog", "Hurricane", "Tornado", "Sunshine"],
    "Nature": ["Mountain", "River", "Ocean", "Forest", "Desert", "Volcano", "Waterfall", "Island", "Cave", "Beach"],
    "Household Items": ["Chair", "Table", "Lamp", "Pillow", "Blanket", "Mirror", "Toaster", "Fridge", "Spoon", "Clock"],
    "Clothing": ["Jacket", "T-Shirt", "Jeans", "Sneakers", "Hat", "Scarf", "Gloves", "Socks", "Dress", "Hoodie"],
    "Body Parts": ["Head", "Shoulder", "Knee", "Toe", "Elbow", "Wrist", "Ankle", "Back", "Finger", "Nose"],
    "Emotions": ["Happy", "Sad", "Angry", "Excited", "Nervous", "Calm", "Confused", "Proud", "Jealous", "Surprised"],
    "Fantasy": ["Dragon", "Wizard", "Knight", "Castle", "Spell", "Potion", "Elf", "Orc", "Unicorn", "Phoenix"],
    "Space": ["Planet", "Star", "Moon", "Rocket", "Astronaut", "Galaxy", "Comet", "Meteor", "Satellite", "Alien"],
    "Holidays": ["Christmas", "Halloween", "Easter", "Thanksgiving", "Birthday", "New Year", "Valentine", "Fireworks", "Pumpkin", "Parade"],
    "Places in a City": ["Hospital", "Library", "Airport", "Museum", "Stadium", "Park", "Restaurant", "Mall", "Bank", "School"],
    "Kitchen": ["Oven", "Pan", "Knife", "Fork", "Blender", "Microwave", "Plate", "Cup", "Kettle", "Cutting Board"],
    "Farm": ["Barn", "Tractor", "Hay", "Cow", "Sheep", "Pig", "Chicken", "Horse", "Fence", "Rooster"],
    "Ocean Life": ["Shark", "Whale", "Octopus", "Jellyfish", "Crab", "Lobster", "Seal", "Starfish", "Coral", "Seahorse"],
    "Superheroes": ["Superman", "Batman", "Spider-Man", "Iron Man", "Hulk", "Thor", "Wonder Woman", "Flash", "Aquaman", "Black Panther"],
    "Mythology": ["Zeus", "Hades", "Poseidon", "Athena", "Apollo", "Hercules", "Medusa", "Pegasus", "Minotaur", "Cyclops"],
    "Board Games": ["Chess", "Monopoly", "Scrabble", "Clue", "Risk", "Checkers", "Uno", "Catan", "Battleship", "Jenga"],
}


# YAML option name -> GameConfig attribute
OPTION_NAMES = {
    "minPlayers": "min_players",
    "maxPlayers": "max_players",
    "discussionTime": "discussion_time",
    "minDiscussionBeforeVote": "min_discussion_before_vote",
    "voteLockTime": "vote_lock_time",
    "roleRevealTime": "role_reveal_time",
    "clueMaxLength": "clue_max_length",
    "lobbyCodeLength": "lobby_code_length",
    "lobbyCodeMinLength": "lobby_code_min_length",
    "lobbyCodeMaxLength": "lobby_code_max_length",
    "topicsPerBallot": "topics_per_ballot",
    "storeTimeout": "store_timeout",
}

# Options older configs carry that this version does not support
IGNORED_OPTIONS = ("clueRounds",)


@dataclass
class GameConfig:
    """Configuration shared by every client of a lobby.

    Durations are in seconds.
    """
    min_players: int = 3
    max_players: int = 8
    discussion_time: int = 180
    min_discussion_before_vote: int = 15
    vote_lock_time: int = 15
    role_reveal_time: int = 12
    clue_max_length: int = 60
    lobby_code_length: int = 6
    lobby_code_min_length: int = 3
    lobby_code_max_length: int = 8
    topics_per_ballot: int = 5
    store_timeout: float = 10.0
    topics: dict[str, list[str]] = field(default_factory=lambda: {
        name: list(words) for name, words in DEFAULT_TOPICS.items()
    })

    def __post_init__(self):
        if self.min_players < 2:
            raise ValueError(f"minPlayers must be at least 2, got {self.min_players}")
        if self.max_players < self.min_players:
            raise ValueError(
                f"maxPlayers ({self.max_players}) is below minPlayers ({self.min_players})"
            )
        if not self.lobby_code_min_length <= self.lobby_code_length <= self.lobby_code_max_length:
            raise ValueError(
                f"lobbyCodeLength ({self.lobby_code_length}) must lie within "
                f"[{self.lobby_code_min_length}, {self.lobby_code_max_length}]"
            )
        if self.topics_per_ballot > len(self.topics):
            raise ValueError(
                f"topicsPerBallot ({self.topics_per_ballot}) exceeds the "
                f"{len(self.topics)} configured topics"
            )
        empty = [name for name, words in self.topics.items() if not words]
        if empty:
            raise ValueError(f"Topics without words: {empty}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameConfig":
        """Build a config from the parsed YAML document.

        Args:
            data: Mapping with an optional `game` section of camelCase options
                and an optional `topics` table.
        """
        data = data or {}
        options = dict(data.get("game") or {})
        for key in IGNORED_OPTIONS:
            if key in options:
                logger.warning("Ignoring unsupported game option %s", key)
                del options[key]
        unknown = sorted(set(options) - set(OPTION_NAMES))
        if unknown:
            raise ValueError(f"Unknown game options: {unknown}. Available: {list(OPTION_NAMES)}")

        kwargs: dict[str, Any] = {OPTION_NAMES[key]: value for key, value in options.items()}
        if data.get("topics"):
            kwargs["topics"] = {
                str(name): [str(word) for word in words]
                for name, words in data["topics"].items()
            }
        return cls(**kwargs)


def load_config(config_path: Union[str, Path] = "config/game.yaml") -> GameConfig:
    """Load game configuration from a YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        return GameConfig.from_dict(yaml.safe_load(f))
