"""Local e-mail/password accounts with opaque bearer tokens."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import sqlite3
from typing import Optional

from paperforge.errors import AuthError, ValidationError
from paperforge.knowledge_base.db import Database
from paperforge.knowledge_base.models import User

logger = logging.getLogger(__name__)

_HASH_NAME = "sha256"
_ITERATIONS = 200_000
MIN_PASSWORD_LENGTH = 6


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Return ``salt$hexdigest`` for ``password``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(_HASH_NAME, password.encode(), salt.encode(), _ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    salt, _, _ = stored.partition("$")
    return hmac.compare_digest(hash_password(password, salt), stored)


class AuthProvider:
    """Signs users up and in, and resolves bearer tokens to users."""

    def __init__(self, db: Database):
        self.db = db

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> tuple[User, str]:
        email = (email or "").strip()
        if "@" not in email:
            raise ValidationError("A valid email address is required")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user = User(email=email, full_name=full_name)
        try:
            user_id = self.db.insert_user(user, hash_password(password))
        except sqlite3.IntegrityError as e:
            raise ValidationError("An account with this email already exists") from e

        logger.info("Created account %s", user_id)
        user = user.model_copy(update={"id": user_id, "email": email.lower()})
        return user, self._open_session(user_id)

    def sign_in(self, email: str, password: str) -> tuple[User, str]:
        found = self.db.get_user_credentials((email or "").strip())
        if found is None or not verify_password(password or "", found[1]):
            raise AuthError("Invalid email or password")
        user = found[0]
        return user, self._open_session(user.id)

    def sign_out(self, token: str) -> bool:
        return self.db.delete_session(token)

    def resolve(self, token: Optional[str]) -> Optional[User]:
        if not token:
            return None
        return self.db.get_session_user(token)

    def _open_session(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        self.db.insert_session(token, user_id)
        return token
