"""Константы: уровни, бэнды, режимы партий и статусы."""
from typing import TypedDict


class GameMode(TypedDict):
    key: str
    max_players: int


GAME_MODES: list[GameMode] = [
    {"key": "1v1", "max_players": 2},
    {"key": "2v2", "max_players": 4},
]

DEFAULT_MODE = "2v2"

LEVEL_MIN = 1.0
LEVEL_MAX = 7.0
# Полуширина диапазона по умолчанию вокруг уровня создателя
LEVEL_SPREAD = 0.5

# Категории от слабой к сильной
BAND_RANK: dict[str, int] = {
    "8va": 1,
    "7ma": 2,
    "6ta": 3,
    "5ta": 4,
    "4ta": 5,
    "3ra": 6,
}

STATUS_OPEN = "open"
STATUS_FULL = "full"
STATUS_CLOSED = "closed"

PROFILES = "profiles"
MATCHES = "matches"

DEFAULT_TITLE = "Partido"
# Поля партии, которые создатель может менять через PUT
EDITABLE_MATCH_FIELDS = ("title", "date", "time", "location", "zone")
