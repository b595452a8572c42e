"""
Сборка сервисов и зависимости FastAPI.

Клиенты платформы (хранилище, провайдер авторизации) создаются один раз
и передаются в сервисы явно.
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import firebase_admin
from fastapi import Depends, Request

from .auth import DebugIdentity, FirebaseIdentity, parse_bearer
from .config import get_config
from .errors import AuthError
from .firestore_store import FirestoreStore
from .matches import MatchService
from .profiles import ProfileService
from .store import DocumentStore, MemoryStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    identity: Any
    profiles: ProfileService
    matches: MatchService


def build_services(store: DocumentStore, identity: Any, config=None) -> Services:
    config = config or get_config()
    profiles = ProfileService(store)
    matches = MatchService(
        store,
        profiles,
        list_limit=config.list_limit,
        admin_uids=config.admin_uids,
    )
    return Services(identity=identity, profiles=profiles, matches=matches)


@lru_cache
def default_services() -> Services:
    config = get_config()
    if config.debug and not config.firebase_project_id:
        # В режиме отладки без проекта Firebase работаем в памяти
        logger.warning("debug mode: in-memory store, tokens accepted as 'debug:<uid>'")
        return build_services(MemoryStore(), DebugIdentity(), config)
    options = {"projectId": config.firebase_project_id} if config.firebase_project_id else None
    app = firebase_admin.initialize_app(options=options)
    logger.info("firebase: initialized project=%s", app.project_id)
    return build_services(FirestoreStore(app), FirebaseIdentity(app), config)


def get_services(request: Request) -> Services:
    services = request.app.state.services
    return services if services is not None else default_services()


def current_user(request: Request, services: Services = Depends(get_services)) -> dict:
    """Пользователь из Authorization: Bearer <token>, иначе 401."""
    token = parse_bearer(request.headers.get("Authorization"))
    if not token:
        raise AuthError("No token")
    user = services.identity.verify_token(token)
    if not user:
        raise AuthError("Invalid token")
    return user
