# core/credentials.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from core.errors import AuthError, AuthRequired
from core.models import AccessCredential

logger = logging.getLogger(__name__)


class CredentialManager(QObject):
    """
    Owns the access credential for one session.

    get_valid_access_token() may be called from a fetch worker thread, so
    renewal runs under a lock and the credential is swapped as one object.
    """
    credentialChanged = Signal(object)   # AccessCredential | None
    authenticated = Signal()

    def __init__(self, auth_client, credential: Optional[AccessCredential] = None,
                 clock: Callable[[], float] = time.time, parent=None):
        super().__init__(parent)
        self.auth_client = auth_client
        self.clock = clock
        self._credential = credential
        self._lock = threading.Lock()

    @property
    def credential(self) -> Optional[AccessCredential]:
        return self._credential

    @property
    def is_authenticated(self) -> bool:
        c = self._credential
        return bool(c and (c.access_token or c.refresh_token))

    def get_valid_access_token(self) -> str:
        with self._lock:
            c = self._credential
            if c is None or (not c.access_token and not c.refresh_token):
                raise AuthRequired("Not authenticated")

            if not c.is_expired(self.clock()):
                return c.access_token

            if not c.refresh_token:
                raise AuthRequired("Access token expired and no refresh token available")

            try:
                renewed = self.auth_client.renew_credential(c.refresh_token)
            except AuthError as e:
                logger.warning("Token refresh failed: %s", e)
                raise AuthRequired("Token refresh failed") from e

            c = AccessCredential(
                access_token=renewed.access_token,
                refresh_token=renewed.refresh_token or c.refresh_token,
                expires_at=self.clock() + renewed.expires_in,
            )
            self._credential = c

        logger.info("Access token refreshed (expires in %ds)", renewed.expires_in)
        self.credentialChanged.emit(c)
        return c.access_token

    def adopt(self, credential: AccessCredential) -> None:
        with self._lock:
            self._credential = credential
        self.credentialChanged.emit(credential)
        self.authenticated.emit()

    def invalidate(self) -> None:
        """Force a renewal on the next use (the API rejected our token)."""
        with self._lock:
            c = self._credential
            if c is None:
                return
            self._credential = AccessCredential(
                access_token="",
                refresh_token=c.refresh_token,
                expires_at=0.0,
            )

    def clear(self) -> None:
        with self._lock:
            self._credential = None
        self.credentialChanged.emit(None)
