from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from padel_api.auth import DebugIdentity
from padel_api.deps import build_services
from padel_api.main import create_app
from padel_api.matches import MatchService
from padel_api.profiles import ProfileService
from padel_api.store import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def profiles(store) -> ProfileService:
    return ProfileService(store)


@pytest.fixture
def matches(store, profiles) -> MatchService:
    return MatchService(store, profiles, list_limit=50, admin_uids=["admin"])


@pytest.fixture
def player(profiles):
    """Creates a profile with the given numeric level and returns the uid."""

    def _player(uid: str, level: float | None = 4.0) -> str:
        payload = {"displayName": uid}
        if level is not None:
            payload["level"] = level
        profiles.upsert(uid, payload)
        return uid

    return _player


@pytest.fixture
def client(store) -> TestClient:
    services = build_services(store, DebugIdentity())
    return TestClient(create_app(services))
