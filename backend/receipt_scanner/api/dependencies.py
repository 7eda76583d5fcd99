"""Common dependencies for FastAPI routes.

Long-lived collaborators (connection pool, identity verifier, extraction
service, access policy) are created by the application lifespan and kept on
``app.state``; these functions hand them to route handlers.  Tests replace
them through ``app.dependency_overrides`` or by pre-populating the state.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from receipt_scanner.core.context import RequestContext, get_request_context
from receipt_scanner.core.database import MongoConnectionPool, get_pool
from receipt_scanner.core.policy import AccessPolicy
from receipt_scanner.core.security import FirebaseIdentityVerifier
from receipt_scanner.services.extraction_service import ExtractionService
from receipt_scanner.services.receipt_store import ReceiptStore


def get_store(pool: MongoConnectionPool = Depends(get_pool)) -> ReceiptStore:
    return ReceiptStore(pool)


def get_identity_verifier(request: Request) -> FirebaseIdentityVerifier:
    return request.app.state.identity_verifier


def get_extraction_service(request: Request) -> ExtractionService:
    return request.app.state.extraction_service


def get_access_policy(request: Request) -> AccessPolicy:
    return request.app.state.access_policy


def require_subject(
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    verifier: FirebaseIdentityVerifier = Depends(get_identity_verifier),
) -> str:
    """Resolve the caller's Firebase uid or answer 401.

    Why verification failed is only logged; every failure looks the same to
    the client.
    """
    subject = verifier.verify(request.headers.get("Authorization"), ctx)
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Authentication required",
        )
    return subject
