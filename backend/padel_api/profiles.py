"""Профили игроков: один документ на uid, upsert с мержем."""
import logging
from typing import Any

from .constants import PROFILES
from .errors import ValidationError
from .levels import band_to_level, parse_level
from .store import DocumentStore

logger = logging.getLogger(__name__)

# Значения по умолчанию, которые пишутся только при создании профиля
PROFILE_DEFAULTS: dict[str, Any] = {
    "displayName": "",
    "position": "Drive",
    "styleGame": "Ofensivo",
    "experienceYears": 0,
    "age": None,
    "gender": "Masculino",
    "city": "",
    "zone": "",
}

TEXT_FIELDS = ("position", "styleGame", "gender", "city", "zone")


def _to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None


def clean_profile(payload: dict) -> dict:
    """Оставляет только известные поля и приводит их к нужным типам."""
    safe: dict[str, Any] = {}
    if "displayName" in payload:
        safe["displayName"] = str(payload["displayName"] or "").strip()
    for field in TEXT_FIELDS:
        if payload.get(field) is not None:
            safe[field] = str(payload[field])
    if payload.get("experienceYears") is not None:
        safe["experienceYears"] = _to_int(payload["experienceYears"], "experienceYears")
    if "age" in payload:
        safe["age"] = _to_int(payload["age"], "age") if payload["age"] not in (None, "") else None

    if payload.get("level") is not None:
        safe["level"] = parse_level(payload["level"])
    elif payload.get("levelBand"):
        safe["level"] = band_to_level(payload["levelBand"])
    if payload.get("levelBand"):
        # Бэнд сохраняем для отображения, уровень всегда числовой
        band_to_level(payload["levelBand"])
        safe["levelBand"] = payload["levelBand"]
    return safe


class ProfileService:
    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, uid: str) -> dict | None:
        doc = self._store.get(PROFILES, uid)
        if doc is None:
            return None
        doc.pop("id", None)
        return doc

    def level_of(self, uid: str) -> float | None:
        """Числовой уровень игрока или None, если профиль не заполнен."""
        profile = self.get(uid) or {}
        level = profile.get("level")
        if isinstance(level, bool) or not isinstance(level, (int, float)):
            return None
        return float(level)

    def upsert(self, uid: str, payload: dict) -> dict:
        safe = clean_profile(payload or {})
        now = self._store.now()

        def mutate(current: dict | None) -> dict:
            data = dict(safe, uid=uid, updatedAt=now)
            if current is None:
                data = {**PROFILE_DEFAULTS, "createdAt": now, **data}
            return data

        self._store.transact(PROFILES, uid, mutate)
        logger.info("profile: upsert uid=%s fields=%s", uid, sorted(safe))
        return self.get(uid)
