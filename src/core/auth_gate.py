# core/auth_gate.py
from __future__ import annotations

import hashlib
import hmac
import logging
import os
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from core.errors import AuthError

logger = logging.getLogger(__name__)

_ALGO = "pbkdf2_sha256"
_DEFAULT_ITERATIONS = 200_000


def hash_secret(secret: str, salt: bytes | None = None, iterations: int = _DEFAULT_ITERATIONS) -> str:
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, iterations)
    return f"{_ALGO}${iterations}${salt.hex()}${digest.hex()}"


def verify_secret(secret: str, encoded: str) -> bool:
    try:
        algo, iterations, salt_hex, digest_hex = encoded.split("$")
        if algo != _ALGO:
            return False
        digest = hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)


class ConfigAuthGate(QObject):
    """
    Guards configuration edits. With no password hash configured the gate
    is open and the configured identity is signed in from the start.
    """
    currentUserChanged = Signal(object)   # str | None

    def __init__(self, identity: str, password_hash: str = "", parent=None):
        super().__init__(parent)
        self.identity = identity
        self.password_hash = password_hash
        self._current_user: Optional[str] = None if password_hash else identity

    @property
    def requires_login(self) -> bool:
        return bool(self.password_hash)

    @property
    def current_user(self) -> Optional[str]:
        return self._current_user

    def subscribe(self, callback: Callable[[Optional[str]], None]) -> Callable[[], None]:
        self.currentUserChanged.connect(callback)
        callback(self._current_user)

        def unsubscribe():
            try:
                self.currentUserChanged.disconnect(callback)
            except (RuntimeError, TypeError):
                pass
        return unsubscribe

    def login(self, identity: str, secret: str) -> str:
        if not self.requires_login:
            return self._set_user(self.identity)

        if identity.strip() != self.identity or not verify_secret(secret, self.password_hash):
            logger.warning("Rejected config login for %r", identity)
            raise AuthError("Invalid credentials")
        return self._set_user(self.identity)

    def logout(self) -> None:
        if not self.requires_login:
            return
        self._set_user(None)

    def _set_user(self, user: Optional[str]):
        if user != self._current_user:
            self._current_user = user
            self.currentUserChanged.emit(user)
        return user
