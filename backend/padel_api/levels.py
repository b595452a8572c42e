"""
Уровни игроков.

Старые записи хранили категорию (бэнд, `8va` … `3ra`), новые — числовой
уровень 1.0–7.0. Здесь единственная точка перевода бэнда в число,
разбор уровней из запросов и вычисление диапазона по умолчанию.
"""
import math
from typing import Any

from .constants import BAND_RANK, LEVEL_MAX, LEVEL_MIN, LEVEL_SPREAD
from .errors import ValidationError


def band_to_level(band: str) -> float:
    """
    Миграция бэнда в числовой уровень: ранг 1 (8va) → 1.0, ранг 6 (3ra) → 6.0.
    Неизвестный бэнд даёт ValidationError.
    """
    rank = BAND_RANK.get(band)
    if rank is None:
        raise ValidationError(f"unknown level band: {band}")
    return float(rank)


def clamp(value: float) -> float:
    return max(LEVEL_MIN, min(LEVEL_MAX, value))


def parse_level(value: Any, field: str = "level") -> float:
    """Число в [1, 7] или имя бэнда. Иначе ValidationError."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number between {LEVEL_MIN:g} and {LEVEL_MAX:g}")
    if isinstance(value, str) and value in BAND_RANK:
        return band_to_level(value)
    try:
        level = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number or a level band") from None
    if not LEVEL_MIN <= level <= LEVEL_MAX:
        raise ValidationError(f"{field} must be between {LEVEL_MIN:g} and {LEVEL_MAX:g}")
    return level


def parse_level_query(value: str | None) -> float | None:
    """
    Фильтр уровня из query string. Отсутствующее или нечисловое значение
    означает «без фильтра», это не ошибка.
    """
    if value is None or value == "":
        return None
    if value in BAND_RANK:
        return band_to_level(value)
    try:
        level = float(value)
    except ValueError:
        return None
    # nan и inf тоже не фильтр
    return level if math.isfinite(level) else None


def default_bounds(level: float) -> tuple[float, float]:
    return clamp(level - LEVEL_SPREAD), clamp(level + LEVEL_SPREAD)


def resolve_bounds(level: float, level_min: Any = None, level_max: Any = None) -> tuple[float, float]:
    """
    Границы допуска для новой партии. Не указанная граница берётся
    из диапазона по умолчанию вокруг уровня создателя.
    """
    lo, hi = default_bounds(level)
    if level_min is not None:
        lo = parse_level(level_min, "levelMin")
    if level_max is not None:
        hi = parse_level(level_max, "levelMax")
    check_bounds(lo, hi)
    return lo, hi


def check_bounds(level_min: float | None, level_max: float | None) -> None:
    if level_min is not None and level_max is not None and level_min > level_max:
        raise ValidationError("levelMin must not be greater than levelMax")


def level_in_bounds(level: float, level_min: Any, level_max: Any) -> bool:
    """Отсутствующая (или нечисловая) граница считается неограниченной."""
    if isinstance(level_min, (int, float)) and level < level_min:
        return False
    if isinstance(level_max, (int, float)) and level > level_max:
        return False
    return True
