"""
Хранилище поверх Cloud Firestore (firebase-admin).

Запросы строятся так, чтобы не требовать составных индексов: равенства
плюс не больше одного неравенства и без orderBy, порядок наводит вызывающий код.
"""
import logging
from functools import wraps
from typing import Any

from firebase_admin import App
from firebase_admin import firestore as admin_firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .errors import InternalError
from .store import DELETE, DocumentStore, Mutation

logger = logging.getLogger(__name__)


def storage_errors(func):
    """Ошибки Firestore превращаются в InternalError (500)."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GoogleAPIError as e:
            logger.error("firestore: %s failed: %s", func.__name__, e)
            raise InternalError(f"storage error: {e}") from e
    return wrapper


class FirestoreStore(DocumentStore):
    def __init__(self, app: App | None = None):
        self._db = admin_firestore.client(app)

    def now(self) -> Any:
        return firestore.SERVER_TIMESTAMP

    def _ref(self, collection: str, doc_id: str):
        return self._db.collection(collection).document(doc_id)

    @staticmethod
    def _out(snap) -> dict:
        return {"id": snap.id, **(snap.to_dict() or {})}

    @storage_errors
    def get(self, collection: str, doc_id: str) -> dict | None:
        snap = self._ref(collection, doc_id).get()
        return self._out(snap) if snap.exists else None

    @storage_errors
    def add(self, collection: str, data: dict) -> str:
        _, ref = self._db.collection(collection).add(data)
        return ref.id

    @storage_errors
    def query(
        self,
        collection: str,
        *,
        equals: dict[str, Any] | None = None,
        at_most: tuple[str, Any] | None = None,
        contains: tuple[str, Any] | None = None,
        limit: int = 50,
    ) -> list[dict]:
        q = self._db.collection(collection)
        for field, value in (equals or {}).items():
            q = q.where(filter=FieldFilter(field, "==", value))
        if at_most is not None:
            field, value = at_most
            q = q.where(filter=FieldFilter(field, "<=", value))
        if contains is not None:
            field, value = contains
            q = q.where(filter=FieldFilter(field, "array_contains", value))
        return [self._out(snap) for snap in q.limit(limit).stream()]

    @storage_errors
    def transact(self, collection: str, doc_id: str, mutate: Mutation) -> None:
        ref = self._ref(collection, doc_id)

        @firestore.transactional
        def run(transaction):
            snap = ref.get(transaction=transaction)
            result = mutate(self._out(snap) if snap.exists else None)
            if result is None:
                return
            if result is DELETE:
                transaction.delete(ref)
            else:
                transaction.set(ref, result, merge=True)

        # При конфликте Firestore перезапускает run, mutate вызывается заново
        run(self._db.transaction())
        logger.debug("firestore: transaction committed %s/%s", collection, doc_id)
