"""Sentry wiring for the API process.

Nothing is reported unless ``SENTRY_DSN`` is set; every helper here is a
no-op otherwise, so handlers call them unconditionally.  Request bodies are
never forwarded because they carry base64 receipt photos and receipt
contents, and bearer tokens are stripped from captured headers.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from receipt_scanner.core.config import settings

_PRIVATE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "x-api-key"})
_MAX_TAG_LENGTH = 128

_initialised = False


def _before_send(event: Dict[str, Any], hint: Dict[str, Any] | None = None):
	request = event.setdefault("request", {})
	headers = request.get("headers") or {}
	request["headers"] = {k: v for k, v in headers.items() if k.lower() not in _PRIVATE_HEADERS}
	request.pop("data", None)
	return event


def sentry_enabled() -> bool:
	return bool(settings.SENTRY_DSN)


def init_sentry(service: str) -> bool:
	"""Start the SDK for ``service``; True when reporting is active."""
	global _initialised
	if not sentry_enabled():
		return False
	if not _initialised:
		sentry_sdk.init(
			dsn=settings.SENTRY_DSN,
			integrations=[FastApiIntegration()],
			traces_sample_rate=float(settings.SENTRY_TRACES_SAMPLE_RATE or 0),
			environment=settings.ENVIRONMENT,
			release=settings.SENTRY_RELEASE,
			send_default_pii=False,
			before_send=_before_send,
		)
		sentry_sdk.set_tag("service", service)
		_initialised = True
	return True


def sentry_set_tags(tags: Dict[str, Any]) -> None:
	if not sentry_enabled():
		return
	for key, value in (tags or {}).items():
		sentry_sdk.set_tag(str(key), "" if value is None else str(value)[:_MAX_TAG_LENGTH])


def sentry_breadcrumb(category: str, message: str, data: Optional[Dict[str, Any]] = None) -> None:
	if sentry_enabled():
		sentry_sdk.add_breadcrumb(category=category, message=message, level="info", data=data or {})


def sentry_capture(exc: BaseException) -> None:
	if sentry_enabled():
		sentry_sdk.capture_exception(exc)


__all__ = ["init_sentry", "sentry_set_tags", "sentry_breadcrumb", "sentry_capture", "sentry_enabled"]
