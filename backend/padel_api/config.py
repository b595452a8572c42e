"""Конфигурация приложения."""
import os
from functools import lru_cache


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache
def get_config():
    return type("Config", (), {
        "firebase_project_id": os.environ.get("FIREBASE_PROJECT_ID", ""),
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "allowed_origins": _split(os.environ.get("ALLOWED_ORIGINS", "*")),
        "admin_uids": _split(os.environ.get("ADMIN_UIDS", "")),
        "list_limit": int(os.environ.get("LIST_LIMIT", "50")),
    })()
