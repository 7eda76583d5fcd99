"""Miscellaneous helper functions."""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Optional, Tuple

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,", re.IGNORECASE)


def parse_json_object(text: str | None) -> Optional[Any]:
    """Parse model output that should be a JSON object.

    Vision models sometimes wrap JSON in prose or Markdown fences.  The text
    is first parsed as-is; failing that, the outermost ``{...}`` span is
    tried.  Returns ``None`` when neither parses.
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass
    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except ValueError:
        return None


def split_data_url(payload: str) -> Tuple[Optional[str], str]:
    """Split ``data:<mime>;base64,<data>`` into ``(mime, data)``.

    Plain base64 strings come back as ``(None, payload)``.
    """
    match = _DATA_URL_RE.match(payload)
    if not match:
        return None, payload
    return match.group("mime"), payload[match.end():]


def decode_base64(data: str) -> bytes:
    """Strictly decode base64, ignoring embedded whitespace.

    Raises ``ValueError`` when the payload is not valid base64.
    """
    compact = "".join(data.split())
    try:
        return base64.b64decode(compact, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 data: {exc}") from exc
