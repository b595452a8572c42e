"""
Padel API: профили, партии, вход и выход из партий.
"""
import logging
import time
from typing import Any

from fastapi import Body, Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .deps import Services, current_user, get_services
from .errors import (
    ApiError,
    ValidationError,
    api_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from .levels import parse_level_query

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

Payload = dict[str, Any] | None


def create_app(services: Services | None = None) -> FastAPI:
    """
    При services=None сервисы собираются лениво при первом запросе
    из переменных окружения (см. deps.default_services).
    """
    config = get_config()
    app = FastAPI(title="Padel API")
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/health")
    def health():
        return {"ok": True, "ts": int(time.time() * 1000)}

    # --- Пользователи и профили ---

    @app.post("/users")
    def create_user(payload: Payload = Body(None), s: Services = Depends(get_services)):
        payload = payload or {}
        email, password = payload.get("email"), payload.get("password")
        if not email or not password:
            raise ValidationError("email and password required")
        if not isinstance(email, str) or not isinstance(password, str):
            raise ValidationError("email and password must be strings")
        user = s.identity.create_user(email, password)
        logger.info("users: created uid=%s", user["uid"])
        return user

    @app.get("/me")
    @app.get("/profiles/me")
    def get_profile(user: dict = Depends(current_user), s: Services = Depends(get_services)):
        return s.profiles.get(user["uid"])

    @app.put("/profile")
    @app.post("/profiles/me")
    def save_profile(
        payload: Payload = Body(None),
        user: dict = Depends(current_user),
        s: Services = Depends(get_services),
    ):
        return s.profiles.upsert(user["uid"], payload or {})

    # --- Партии ---

    @app.post("/matches", status_code=201)
    def create_match(
        payload: Payload = Body(None),
        user: dict = Depends(current_user),
        s: Services = Depends(get_services),
    ):
        return s.matches.create(user["uid"], payload or {})

    @app.get("/matches")
    def list_matches(
        level: str | None = None,
        date: str | None = None,
        zone: str | None = None,
        s: Services = Depends(get_services),
    ):
        return s.matches.search(level=parse_level_query(level), date=date, zone=zone)

    @app.get("/matches/mine")
    def my_matches(user: dict = Depends(current_user), s: Services = Depends(get_services)):
        return s.matches.mine(user["uid"])

    @app.get("/matches/open")
    def open_matches(s: Services = Depends(get_services)):
        return s.matches.open_matches()

    @app.get("/matches/available")
    def available_matches(user: dict = Depends(current_user), s: Services = Depends(get_services)):
        return s.matches.available(user["uid"])

    @app.post("/matches/{match_id}/join")
    def join_match(match_id: str, user: dict = Depends(current_user), s: Services = Depends(get_services)):
        s.matches.join(match_id, user["uid"])
        return {"message": "joined"}

    @app.post("/matches/{match_id}/leave")
    def leave_match(match_id: str, user: dict = Depends(current_user), s: Services = Depends(get_services)):
        s.matches.leave(match_id, user["uid"])
        return {"message": "left"}

    @app.post("/matches/{match_id}/close")
    def close_match(match_id: str, user: dict = Depends(current_user), s: Services = Depends(get_services)):
        return s.matches.close(match_id, user["uid"])

    @app.put("/matches/{match_id}")
    def update_match(
        match_id: str,
        payload: Payload = Body(None),
        user: dict = Depends(current_user),
        s: Services = Depends(get_services),
    ):
        return s.matches.update(match_id, user["uid"], payload or {})

    @app.delete("/matches/{match_id}")
    def delete_match(match_id: str, user: dict = Depends(current_user), s: Services = Depends(get_services)):
        s.matches.delete(match_id, user["uid"])
        return {"ok": True}

    return app


app = create_app()
