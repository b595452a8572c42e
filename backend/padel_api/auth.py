"""
Проверка Firebase ID Token и создание пользователей.
https://firebase.google.com/docs/auth/admin/verify-id-tokens
"""
import logging
import threading
import uuid

from firebase_admin import App
from firebase_admin import auth as admin_auth
from firebase_admin.exceptions import FirebaseError

from .errors import ValidationError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
DEBUG_PREFIX = "debug:"


def parse_bearer(header: str | None) -> str | None:
    """Достаёт токен из заголовка Authorization или возвращает None."""
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


class FirebaseIdentity:
    def __init__(self, app: App | None = None):
        self._app = app

    def verify_token(self, token: str) -> dict | None:
        """
        Проверяет подпись и срок токена, возвращает {"uid", "email"} или None.
        """
        try:
            decoded = admin_auth.verify_id_token(token, app=self._app)
        except (ValueError, admin_auth.InvalidIdTokenError, admin_auth.UserDisabledError,
                admin_auth.CertificateFetchError) as e:
            logger.info("auth: token rejected: %s", e)
            return None
        return {"uid": decoded["uid"], "email": decoded.get("email")}

    def create_user(self, email: str, password: str) -> dict:
        try:
            user = admin_auth.create_user(email=email, password=password, app=self._app)
        except (ValueError, FirebaseError) as e:
            raise ValidationError(str(e)) from e
        return {"uid": user.uid, "email": user.email}


class DebugIdentity:
    """
    Провайдер для отладки и тестов: токен вида "debug:<uid>" принимается
    без проверки подписи.
    """

    def __init__(self):
        self._users: dict[str, str] = {}
        self._lock = threading.Lock()

    def verify_token(self, token: str) -> dict | None:
        if not token.startswith(DEBUG_PREFIX):
            return None
        uid = token[len(DEBUG_PREFIX):]
        if not uid:
            return None
        with self._lock:
            email = next((e for e, u in self._users.items() if u == uid), None)
        return {"uid": uid, "email": email}

    def create_user(self, email: str, password: str) -> dict:
        if not isinstance(email, str) or not isinstance(password, str):
            raise ValidationError("email and password must be strings")
        if len(password) < 6:
            raise ValidationError("password must be at least 6 characters long")
        uid = uuid.uuid4().hex[:28]
        with self._lock:
            if email in self._users:
                raise ValidationError(f"user with email {email} already exists")
            self._users[email] = uid
        return {"uid": uid, "email": email}
