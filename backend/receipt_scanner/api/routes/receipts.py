"""API routes for the receipt lifecycle.

POST /processReceipt             run extraction on a photo (nothing stored)
POST /saveReceipt                create a receipt document, return its id
GET  /loadReceiptById/{id}       read a receipt document
PUT  /updateReceiptById/{id}     top-level merge into an existing document

Every route authenticates first; a wrong HTTP method is answered with 405 by
the router before any dependency runs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from receipt_scanner.api.dependencies import (
    get_access_policy,
    get_extraction_service,
    get_store,
    require_subject,
)
from receipt_scanner.core.context import RequestContext, get_request_context
from receipt_scanner.core.observability import sentry_breadcrumb, sentry_set_tags
from receipt_scanner.core.policy import AccessPolicy
from receipt_scanner.models.schemas import (
    ErrorResponse,
    ProcessReceiptRequest,
    ReceiptEnvelope,
    ReceiptIdResponse,
    ReceiptPatch,
)
from receipt_scanner.services.extraction_service import (
    ExtractionError,
    ExtractionService,
    InvalidImageError,
)
from receipt_scanner.services.receipt_store import ReceiptStore, utcnow

logger = logging.getLogger(__name__)
router = APIRouter(
    tags=["receipts"],
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 405, 500)},
)

DEFAULT_SOURCE = "mobile_app"
# Keys added to load responses; clients may send them back in update bodies.
RESPONSE_ONLY_KEYS = ("_id", "documentId", "success")


def _invalid_structure() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid receipt data structure. Missing required fields",
    )


def _ensure_access(policy: AccessPolicy, subject: str, document: Mapping[str, Any], ctx: RequestContext, receipt_id: str) -> None:
    if not policy.may_access(subject, document):
        logger.error("[receipts:%s] user %s not authorized for receipt %s", ctx.request_id, subject, receipt_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: You do not have permission to access this receipt",
        )


def _missing_id(ctx: RequestContext) -> HTTPException:
    logger.error("[receipts:%s] missing receipt id", ctx.request_id)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Receipt ID is required")


# ── POST /processReceipt ─────────────────────────────────────────────────
@router.post("/processReceipt")
def process_receipt(
    ctx: RequestContext = Depends(get_request_context),
    user_id: str = Depends(require_subject),
    req: Optional[ProcessReceiptRequest] = Body(None),
    extractor: ExtractionService = Depends(get_extraction_service),
):
    logger.info("[receipts:%s] process called by %s", ctx.request_id, user_id)
    if req is None or not req.image:
        logger.error("[receipts:%s] no image provided", ctx.request_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image provided")

    sentry_breadcrumb("receipts", "extraction started", data={"request_id": ctx.request_id})
    try:
        result = extractor.extract(req.image, req.type)
    except InvalidImageError as exc:
        logger.error("[receipts:%s] invalid image: %s", ctx.request_id, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ExtractionError as exc:
        logger.error("[receipts:%s] error processing receipt: %s", ctx.request_id, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc) or "Unknown error during receipt processing",
        )

    result["userId"] = user_id
    result["success"] = True
    logger.info("[receipts:%s] receipt processed successfully", ctx.request_id)
    return result


# ── POST /saveReceipt ────────────────────────────────────────────────────
@router.post("/saveReceipt", response_model=ReceiptIdResponse)
def save_receipt(
    ctx: RequestContext = Depends(get_request_context),
    user_id: str = Depends(require_subject),
    payload: Optional[Dict[str, Any]] = Body(None),
    store: ReceiptStore = Depends(get_store),
):
    logger.info("[receipts:%s] save called by %s", ctx.request_id, user_id)
    if not payload:
        logger.info("[receipts:%s] no receipt data provided", ctx.request_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Receipt data is required")
    try:
        ReceiptEnvelope.model_validate(payload)
    except ValidationError as exc:
        logger.error("[receipts:%s] invalid receipt data structure: %s", ctx.request_id, exc.errors()[0].get("msg"))
        raise _invalid_structure()

    document = dict(payload)
    metadata = document.get("processingMetadata")
    if metadata is None:
        document["processingMetadata"] = {
            "processedAt": utcnow(),
            "source": DEFAULT_SOURCE,
            "userId": user_id,
        }
    else:
        document["processingMetadata"] = {**metadata, "userId": user_id}

    receipt_id = store.create(document)
    logger.info("[receipts:%s] document created with id %s", ctx.request_id, receipt_id)
    sentry_set_tags({"receipt_id": receipt_id})
    return ReceiptIdResponse(id=receipt_id)


# ── GET /loadReceiptById/{receipt_id} ────────────────────────────────────
@router.get("/loadReceiptById")
@router.get("/loadReceiptById/{receipt_id}")
def load_receipt(
    receipt_id: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    user_id: str = Depends(require_subject),
    store: ReceiptStore = Depends(get_store),
    policy: AccessPolicy = Depends(get_access_policy),
):
    if not receipt_id:
        raise _missing_id(ctx)
    logger.info("[receipts:%s] loading receipt %s for %s", ctx.request_id, receipt_id, user_id)

    document = store.get_by_id(receipt_id)
    if not document:
        logger.error("[receipts:%s] receipt not found: %s", ctx.request_id, receipt_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    _ensure_access(policy, user_id, document, ctx, receipt_id)

    body = jsonable_encoder(document, custom_encoder={ObjectId: str})
    for key in ("shareData", "processedData"):
        if isinstance(body.get(key), dict):
            body[key]["documentId"] = receipt_id
    body["documentId"] = receipt_id
    body["success"] = True
    logger.info("[receipts:%s] receipt %s loaded", ctx.request_id, receipt_id)
    return body


# ── PUT /updateReceiptById/{receipt_id} ──────────────────────────────────
@router.put("/updateReceiptById", response_model=ReceiptIdResponse)
@router.put("/updateReceiptById/{receipt_id}", response_model=ReceiptIdResponse)
def update_receipt(
    receipt_id: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    user_id: str = Depends(require_subject),
    patch: Optional[Dict[str, Any]] = Body(None),
    store: ReceiptStore = Depends(get_store),
    policy: AccessPolicy = Depends(get_access_policy),
):
    if not receipt_id:
        raise _missing_id(ctx)
    logger.info("[receipts:%s] updating receipt %s for %s", ctx.request_id, receipt_id, user_id)
    if not patch:
        logger.info("[receipts:%s] no update data provided", ctx.request_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Update data is required")
    try:
        ReceiptPatch.model_validate(patch)
    except ValidationError:
        logger.error("[receipts:%s] invalid update structure for %s", ctx.request_id, receipt_id)
        raise _invalid_structure()

    existing = store.get_by_id(receipt_id)
    if not existing:
        logger.error("[receipts:%s] receipt not found: %s", ctx.request_id, receipt_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receipt not found")
    _ensure_access(policy, user_id, existing, ctx, receipt_id)

    changes = {k: v for k, v in patch.items() if k not in RESPONSE_ONLY_KEYS}
    stored_metadata = existing.get("processingMetadata")
    # updatedBy is reset to the latest editor rather than appended to.
    changes["processingMetadata"] = {
        **(stored_metadata if isinstance(stored_metadata, dict) else {}),
        **(patch.get("processingMetadata") or {}),
        "updatedAt": utcnow(),
        "userId": user_id,
        "updatedBy": [user_id],
    }

    if not store.update_by_id(receipt_id, changes):
        logger.info("[receipts:%s] update of %s did not succeed", ctx.request_id, receipt_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update receipt",
        )
    logger.info("[receipts:%s] receipt %s updated", ctx.request_id, receipt_id)
    return ReceiptIdResponse(id=receipt_id)
