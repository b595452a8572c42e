"""
Хранилище документов: общий интерфейс и реализация в памяти.

Интерфейс повторяет то подмножество Firestore, которым пользуется сервис:
документы в коллекциях, запросы с равенствами и одним неравенством,
транзакция над одним документом. In-memory версия используется в debug-режиме
и в тестах.
"""
import copy
import threading
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

# Результат функции транзакции: удалить документ
DELETE = object()

Mutation = Callable[[dict | None], Any]


class DocumentStore(ABC):
    """
    Базовый класс хранилища. Все методы возвращают копии данных
    с полем "id" документа.
    """

    @abstractmethod
    def now(self) -> Any:
        """Значение метки времени для записи (серверное время, где оно есть)."""
        ...

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict | None:
        ...

    @abstractmethod
    def add(self, collection: str, data: dict) -> str:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        *,
        equals: dict[str, Any] | None = None,
        at_most: tuple[str, Any] | None = None,
        contains: tuple[str, Any] | None = None,
        limit: int = 50,
    ) -> list[dict]:
        """
        equals — фильтры равенства, at_most — одно неравенство `field <= value`,
        contains — `value in field` для массивов. Порядок не гарантирован,
        сортирует вызывающий код.
        """
        ...

    @abstractmethod
    def transact(self, collection: str, doc_id: str, mutate: Mutation) -> None:
        """
        Атомарно читает документ и применяет результат mutate(data):
        dict — частичное обновление, DELETE — удаление, None — без записи.
        Исключение из mutate отменяет транзакцию и пробрасывается дальше.
        """
        ...


def created_at_key(doc: dict) -> datetime:
    ts = doc.get("createdAt")
    if isinstance(ts, datetime):
        return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
    return datetime.min.replace(tzinfo=timezone.utc)


def sort_newest_first(docs: list[dict]) -> list[dict]:
    return sorted(docs, key=created_at_key, reverse=True)


class MemoryStore(DocumentStore):
    def __init__(self):
        self._docs: dict[str, dict[str, dict]] = defaultdict(dict)
        self._lock = threading.RLock()
        self._last_ts = datetime.min.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        # Строго возрастающие метки, чтобы порядок по createdAt был однозначным
        with self._lock:
            ts = max(datetime.now(timezone.utc), self._last_ts + timedelta(microseconds=1))
            self._last_ts = ts
            return ts

    def _out(self, doc_id: str, data: dict) -> dict:
        return {"id": doc_id, **copy.deepcopy(data)}

    def get(self, collection: str, doc_id: str) -> dict | None:
        with self._lock:
            data = self._docs[collection].get(doc_id)
            return self._out(doc_id, data) if data is not None else None

    def add(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex
        with self._lock:
            self._docs[collection][doc_id] = copy.deepcopy(data)
        return doc_id

    def query(
        self,
        collection: str,
        *,
        equals: dict[str, Any] | None = None,
        at_most: tuple[str, Any] | None = None,
        contains: tuple[str, Any] | None = None,
        limit: int = 50,
    ) -> list[dict]:
        with self._lock:
            items = [self._out(doc_id, data) for doc_id, data in self._docs[collection].items()]
        for field, value in (equals or {}).items():
            items = [d for d in items if d.get(field) == value]
        if at_most is not None:
            field, value = at_most
            # Как в Firestore: документы без поля в неравенство не попадают
            items = [d for d in items if isinstance(d.get(field), (int, float)) and d[field] <= value]
        if contains is not None:
            field, value = contains
            items = [d for d in items if isinstance(d.get(field), list) and value in d[field]]
        return items[:limit]

    def transact(self, collection: str, doc_id: str, mutate: Mutation) -> None:
        with self._lock:
            data = self._docs[collection].get(doc_id)
            result = mutate(self._out(doc_id, data) if data is not None else None)
            if result is None:
                return
            if result is DELETE:
                self._docs[collection].pop(doc_id, None)
                return
            stored = dict(data or {})
            stored.update(copy.deepcopy(result))
            self._docs[collection][doc_id] = stored
