"""
Партии: создание, допуск игроков, выход, редактирование и списки.

Любое изменение состава идёт через транзакцию хранилища над одним документом,
поэтому одновременные join не могут превысить maxPlayers.
"""
import logging
from typing import Any

from .constants import (
    DEFAULT_MODE,
    DEFAULT_TITLE,
    EDITABLE_MATCH_FIELDS,
    GAME_MODES,
    MATCHES,
    STATUS_CLOSED,
    STATUS_FULL,
    STATUS_OPEN,
)
from .errors import ConflictError, Forbidden, NotFound, ValidationError
from .levels import check_bounds, level_in_bounds, parse_level, resolve_bounds
from .profiles import ProfileService
from .store import DELETE, DocumentStore, sort_newest_first

logger = logging.getLogger(__name__)


def max_players_for(mode: str) -> int:
    for m in GAME_MODES:
        if m["key"] == mode:
            return m["max_players"]
    raise ValidationError(f"unknown mode: {mode}")


def status_for(players: list[str], max_players: int) -> str:
    return STATUS_FULL if len(players) >= max_players else STATUS_OPEN


def _players(match: dict) -> list[str]:
    players = match.get("players")
    return list(players) if isinstance(players, list) else []


def _max_players(match: dict) -> int:
    try:
        return int(match.get("maxPlayers") or 4)
    except (TypeError, ValueError):
        return 4


class MatchService:
    def __init__(
        self,
        store: DocumentStore,
        profiles: ProfileService,
        list_limit: int = 50,
        admin_uids: tuple[str, ...] | list[str] = (),
    ):
        self._store = store
        self._profiles = profiles
        self._limit = list_limit
        self._admins = set(admin_uids)

    def _require_level(self, level: float | None) -> float:
        if level is None:
            raise ValidationError("profile incomplete")
        return level

    def get(self, match_id: str) -> dict:
        match = self._store.get(MATCHES, match_id)
        if match is None:
            raise NotFound("match not found")
        return match

    def create(self, uid: str, payload: dict) -> dict:
        """
        Создаёт партию. Создатель сразу в players, границы уровня
        по умолчанию: [level-0.5, level+0.5] в пределах [1, 7].
        """
        level = self._require_level(self._profiles.level_of(uid))
        mode = payload.get("mode") or DEFAULT_MODE
        max_players = max_players_for(mode)
        level_min, level_max = resolve_bounds(level, payload.get("levelMin"), payload.get("levelMax"))

        now = self._store.now()
        players = [uid]
        doc = {
            "title": str(payload.get("title") or DEFAULT_TITLE).strip() or DEFAULT_TITLE,
            "date": payload.get("date") or None,
            "time": payload.get("time") or None,
            "location": payload.get("location") or None,
            "zone": payload.get("zone") or None,
            "mode": mode,
            "maxPlayers": max_players,
            "levelMin": level_min,
            "levelMax": level_max,
            "players": players,
            "status": status_for(players, max_players),
            "createdBy": uid,
            "createdAt": now,
            "updatedAt": now,
        }
        match_id = self._store.add(MATCHES, doc)
        logger.info("match: created id=%s by=%s mode=%s levels=%s-%s", match_id, uid, mode, level_min, level_max)
        return self.get(match_id)

    def search(self, level: float | None = None, date: str | None = None, zone: str | None = None) -> list[dict]:
        """
        Открытые партии с фильтрами. В хранилище уходят равенства (status, date, zone)
        и одно неравенство levelMin <= level; levelMax >= level и сортировка
        считаются в памяти, чтобы не заводить составной индекс.
        """
        equals: dict[str, Any] = {"status": STATUS_OPEN}
        if date:
            equals["date"] = date
        if zone:
            equals["zone"] = zone
        items = self._store.query(
            MATCHES,
            equals=equals,
            at_most=("levelMin", level) if level is not None else None,
            limit=self._limit,
        )
        if level is not None:
            items = [m for m in items if level_in_bounds(level, None, m.get("levelMax"))]
        return sort_newest_first(items)

    def mine(self, uid: str) -> list[dict]:
        """Созданные мной и те, где я в players. Два простых запроса вместо OR."""
        created = self._store.query(MATCHES, equals={"createdBy": uid}, limit=self._limit)
        joined = self._store.query(MATCHES, contains=("players", uid), limit=self._limit)
        by_id = {m["id"]: m for m in created}
        by_id.update({m["id"]: m for m in joined})
        return sort_newest_first(list(by_id.values()))

    def open_matches(self) -> list[dict]:
        items = self._store.query(MATCHES, equals={"status": STATUS_OPEN}, limit=self._limit)
        return sort_newest_first(items)

    def available(self, uid: str) -> list[dict]:
        """Открытые партии, которые создал не я и в которых меня нет."""
        return [
            m for m in self.open_matches()
            if m.get("createdBy") != uid and uid not in _players(m)
        ]

    def join(self, match_id: str, uid: str) -> None:
        level = self._profiles.level_of(uid)
        now = self._store.now()

        def mutate(match: dict | None) -> dict:
            if match is None:
                raise NotFound("match not found")
            joiner_level = self._require_level(level)
            # full проверяется ниже по числу игроков
            if match.get("status") not in (STATUS_OPEN, STATUS_FULL):
                raise ConflictError("match closed")
            players = _players(match)
            if uid in players:
                raise ConflictError("already joined")
            max_players = _max_players(match)
            if len(players) >= max_players:
                raise ConflictError("match full")
            if not level_in_bounds(joiner_level, match.get("levelMin"), match.get("levelMax")):
                raise ConflictError("level mismatch")
            players.append(uid)
            return {"players": players, "status": status_for(players, max_players), "updatedAt": now}

        self._store.transact(MATCHES, match_id, mutate)
        logger.info("match: join id=%s uid=%s", match_id, uid)

    def leave(self, match_id: str, uid: str) -> None:
        now = self._store.now()

        def mutate(match: dict | None) -> dict:
            if match is None:
                raise NotFound("match not found")
            players = _players(match)
            if uid not in players:
                raise ConflictError("not a member")
            if match.get("createdBy") == uid:
                raise ConflictError("creator cannot leave")
            players.remove(uid)
            status = STATUS_CLOSED if match.get("status") == STATUS_CLOSED else STATUS_OPEN
            return {"players": players, "status": status, "updatedAt": now}

        self._store.transact(MATCHES, match_id, mutate)
        logger.info("match: leave id=%s uid=%s", match_id, uid)

    def _owned(self, match: dict | None, uid: str) -> dict:
        if match is None:
            raise NotFound("match not found")
        if match.get("createdBy") != uid:
            raise Forbidden("not authorized")
        return match

    def update(self, match_id: str, uid: str, payload: dict) -> dict:
        """Частичный мерж: поля, которых нет в запросе, остаются прежними."""
        now = self._store.now()

        def mutate(match: dict | None) -> dict:
            match = self._owned(match, uid)
            patch: dict[str, Any] = {
                field: payload[field]
                for field in EDITABLE_MATCH_FIELDS
                if payload.get(field) is not None
            }
            if payload.get("levelMin") is not None:
                patch["levelMin"] = parse_level(payload["levelMin"], "levelMin")
            if payload.get("levelMax") is not None:
                patch["levelMax"] = parse_level(payload["levelMax"], "levelMax")
            check_bounds(
                patch.get("levelMin", match.get("levelMin")),
                patch.get("levelMax", match.get("levelMax")),
            )
            patch["updatedAt"] = now
            return patch

        self._store.transact(MATCHES, match_id, mutate)
        logger.info("match: update id=%s by=%s fields=%s", match_id, uid, sorted(payload or {}))
        return self.get(match_id)

    def delete(self, match_id: str, uid: str) -> None:
        def mutate(match: dict | None):
            self._owned(match, uid)
            return DELETE

        self._store.transact(MATCHES, match_id, mutate)
        logger.info("match: delete id=%s by=%s", match_id, uid)

    def close(self, match_id: str, uid: str) -> dict:
        """Явное закрытие партии: создатель или админ из ADMIN_UIDS."""
        now = self._store.now()

        def mutate(match: dict | None) -> dict:
            if match is None:
                raise NotFound("match not found")
            if match.get("createdBy") != uid and uid not in self._admins:
                raise Forbidden("not authorized")
            return {"status": STATUS_CLOSED, "updatedAt": now}

        self._store.transact(MATCHES, match_id, mutate)
        logger.info("match: close id=%s by=%s", match_id, uid)
        return self.get(match_id)
