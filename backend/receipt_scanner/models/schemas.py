"""Pydantic schemas for request and response models.

The receipt document is deliberately loosely typed.  ``ReceiptEnvelope``
names the known top-level keys and checks only their structure:

* ``processedData`` / ``shareData`` must be objects carrying an ``items``
  list (possibly empty);
* ``processingMetadata`` must be an object;
* at creation time at least one of ``originalData``, ``processedData`` and
  ``shareData`` must be present; empty strings, zero and ``false`` count as
  absent, empty objects and lists do not.

Item contents, ``meta_data``, ``payment``, ``originalData`` and any unknown
top-level keys are passed through untouched.  ``MetaData``, ``LineItem`` and
``Payment`` describe the shape the extraction prompt asks the model for;
they document the data but are not enforced on stored documents.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Extraction output shape


class MetaData(BaseModel):
    """Restaurant information printed on the receipt."""

    restaurant: Optional[str] = None
    address: Optional[str] = None
    ordered_time: Optional[str] = None
    checkout_time: Optional[str] = None
    guest_count: Optional[int] = None


class LineItem(BaseModel):
    name: str
    quantity: Optional[float] = None
    total: Optional[float] = None


class Payment(BaseModel):
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    tip: Optional[float] = None
    total: Optional[float] = None
    currency: Optional[str] = Field(default=None, description="ISO code such as USD, EUR, CNY")


class ExtractedReceipt(BaseModel):
    meta_data: MetaData = Field(default_factory=MetaData)
    items: List[LineItem] = Field(default_factory=list)
    payment: Payment = Field(default_factory=Payment)


# ---------------------------------------------------------------------------
# Stored document envelope


class ReceiptView(BaseModel):
    """``processedData`` / ``shareData``: only ``items`` is required."""

    model_config = ConfigDict(extra="allow")

    items: List[Any]
    meta_data: Optional[Any] = None
    payment: Optional[Any] = None


class ReceiptPatch(BaseModel):
    """Structural check applied to update bodies."""

    model_config = ConfigDict(extra="allow")

    originalData: Optional[Any] = None
    processedData: Optional[ReceiptView] = None
    shareData: Optional[ReceiptView] = None
    processingMetadata: Optional[Dict[str, Any]] = None


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (dict, list, BaseModel)):
        return True
    return bool(value)


class ReceiptEnvelope(ReceiptPatch):
    """Structural check applied to new documents."""

    @model_validator(mode="after")
    def _require_receipt_data(self) -> "ReceiptEnvelope":
        if not any(_has_value(v) for v in (self.originalData, self.processedData, self.shareData)):
            raise ValueError("one of originalData, processedData or shareData is required")
        return self


# ---------------------------------------------------------------------------
# API request/response schemas


class ProcessReceiptRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    image: Optional[str] = Field(default=None, description="Base64 encoded image, optionally a data URL")
    type: str = Field(default="image/jpeg", description="Image MIME type")
    name: Optional[str] = None


class ReceiptIdResponse(BaseModel):
    id: str
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
    success: bool = False


__all__ = [
    "MetaData",
    "LineItem",
    "Payment",
    "ExtractedReceipt",
    "ReceiptView",
    "ReceiptPatch",
    "ReceiptEnvelope",
    "ProcessReceiptRequest",
    "ReceiptIdResponse",
    "ErrorResponse",
]
