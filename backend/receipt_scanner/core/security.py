"""Authentication utilities for Firebase integration.

This module verifies Firebase-issued ID tokens presented as
``Authorization: Bearer <token>``.  Signature checking and key rotation are
delegated to the Firebase Admin SDK; this layer only extracts the bearer
token, hands it to the SDK and reduces the outcome to a subject id.

Every failure (missing header, wrong scheme, empty token, rejected token,
token without a ``uid``) collapses to ``None``.  The distinction survives
only in the logs, tagged with the request's correlation id, so callers can
uniformly answer 401.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials

from receipt_scanner.core.config import settings
from receipt_scanner.core.context import RequestContext

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

_init_lock = threading.Lock()


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use.

    Uses the service-account file at ``FIREBASE_CREDENTIALS_PATH`` when set
    and Application Default Credentials otherwise.
    """
    with _init_lock:
        try:
            return firebase_admin.get_app()
        except ValueError:
            pass
        options: Dict[str, Any] = {}
        if settings.FIREBASE_PROJECT_ID:
            options["projectId"] = settings.FIREBASE_PROJECT_ID
        cred = (
            credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
            if settings.FIREBASE_CREDENTIALS_PATH
            else None
        )
        logger.info("[auth] initialising Firebase Admin app project=%s", settings.FIREBASE_PROJECT_ID)
        return firebase_admin.initialize_app(cred, options or None)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of a ``Bearer`` header, or None.

    An empty string is returned for ``"Bearer "`` so callers can tell an
    empty token apart from a missing/malformed header.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip()


class FirebaseIdentityVerifier:
    """Resolve a bearer credential to a Firebase ``uid``."""

    def __init__(self, app: Optional[firebase_admin.App] = None, check_revoked: Optional[bool] = None) -> None:
        self._app = app
        self.check_revoked = settings.FIREBASE_CHECK_REVOKED if check_revoked is None else check_revoked

    def _decode(self, token: str) -> Dict[str, Any]:
        app = self._app or get_firebase_app()
        return firebase_auth.verify_id_token(token, app=app, check_revoked=self.check_revoked)

    def verify(self, authorization: Optional[str], ctx: RequestContext) -> Optional[str]:
        token = extract_bearer_token(authorization)
        if token is None:
            logger.warning("[auth:%s] no valid authorization header", ctx.request_id)
            return None
        if not token:
            logger.warning("[auth:%s] empty token provided", ctx.request_id)
            return None
        try:
            decoded = self._decode(token)
        except Exception as exc:
            logger.error("[auth:%s] token verification failed: %s", ctx.request_id, exc)
            return None
        uid = (decoded or {}).get("uid")
        if not uid:
            logger.warning("[auth:%s] invalid token payload", ctx.request_id)
            return None
        logger.info("[auth:%s] authenticated user %s", ctx.request_id, uid)
        return uid


__all__ = ["FirebaseIdentityVerifier", "extract_bearer_token", "get_firebase_app"]
