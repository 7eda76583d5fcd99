"""Receipt extraction service backed by a vision LLM.

This service turns a base64 receipt photo into the structured
``meta_data`` / ``items`` / ``payment`` layout described by the default
extraction prompt.  Two providers are supported:

* ``gemini`` (default) via the ``google-genai`` SDK, model
  ``gemini-2.0-flash``;
* ``openai`` via the Chat Completions API with an image data URL, model
  ``gpt-4o-mini``.

The parsed JSON is returned verbatim.  It is compared against
``ExtractedReceipt`` only to log deviations; values are never coerced,
since callers review and edit the extraction before saving it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from google import genai
from google.genai import types as genai_types
from openai import OpenAI
from pydantic import ValidationError

from receipt_scanner.core.config import settings
from receipt_scanner.models.schemas import ExtractedReceipt
from receipt_scanner.utils.helpers import decode_base64, parse_json_object, split_data_url
from receipt_scanner.utils.prompts import get_default_extraction_prompt

logger = logging.getLogger(__name__)

DEFAULT_MODELS = {
    "gemini": "gemini-2.0-flash",
    "openai": "gpt-4o-mini",
}


class ExtractionError(Exception):
    """The extraction provider failed or returned unusable output."""


class InvalidImageError(ExtractionError):
    """The submitted image payload could not be decoded."""


class ExtractionService:
    """Service responsible for extracting structured receipt details."""

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        client: Any = None,
        prompt: Optional[str] = None,
    ) -> None:
        self.provider = (provider or settings.EXTRACTION_PROVIDER or "gemini").strip().lower()
        if self.provider not in DEFAULT_MODELS:
            raise ValueError(f"Unsupported EXTRACTION_PROVIDER {self.provider!r}")
        self.model = model or settings.EXTRACTION_MODEL or DEFAULT_MODELS[self.provider]
        self.api_key = api_key
        self.prompt = prompt or get_default_extraction_prompt()
        self._client = client

    # -- provider clients ----------------------------------------------------

    def _get_client(self) -> Any:
        if self._client is None:
            if self.provider == "gemini":
                key = self.api_key or settings.GEMINI_API_KEY
                if not key:
                    raise ExtractionError("GEMINI_API_KEY is not configured")
                self._client = genai.Client(api_key=key)
            else:
                key = self.api_key or settings.OPENAI_API_KEY
                if not key:
                    raise ExtractionError("OPENAI_API_KEY is not configured")
                self._client = OpenAI(api_key=key)
        return self._client

    def _generate_gemini(self, image: bytes, mime_type: str) -> str:
        client = self._get_client()
        config = genai_types.GenerateContentConfig(
            temperature=0,
            top_p=0.8,
            top_k=40,
            max_output_tokens=4096,
            response_mime_type="application/json",
        )
        response = client.models.generate_content(
            model=self.model,
            contents=[self.prompt, genai_types.Part.from_bytes(data=image, mime_type=mime_type)],
            config=config,
        )
        return (response.text or "").strip()

    def _generate_openai(self, image_b64: str, mime_type: str) -> str:
        client = self._get_client()
        response = client.chat.completions.create(
            model=self.model,
            temperature=0,
            response_format={"type": "json_object"},
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_b64}"}},
                    ],
                }
            ],
        )
        content = response.choices[0].message.content
        return (content or "").strip()

    # -- public API ----------------------------------------------------------

    def extract(self, image_b64: str, mime_type: str = "image/jpeg") -> Dict[str, Any]:
        """Run the vision model over a base64 image and return the parsed JSON.

        Raises ``InvalidImageError`` for payloads that are empty or not base64,
        and ``ExtractionError`` when the provider fails or its output does not
        contain a JSON object.
        """
        if not image_b64:
            raise InvalidImageError("No image provided")
        url_mime, data = split_data_url(image_b64)
        mime_type = url_mime or mime_type or "image/jpeg"
        try:
            image = decode_base64(data)
        except ValueError as exc:
            raise InvalidImageError(f"Image is not valid base64: {exc}") from exc
        if not image:
            raise InvalidImageError("No image provided")

        logger.info("[extraction] provider=%s model=%s mime=%s size=%d", self.provider, self.model, mime_type, len(image))
        try:
            if self.provider == "gemini":
                text = self._generate_gemini(image, mime_type)
            else:
                text = self._generate_openai("".join(data.split()), mime_type)
        except ExtractionError:
            raise
        except Exception as exc:
            logger.error("[extraction] %s request failed: %s", self.provider, exc)
            raise ExtractionError(str(exc) or exc.__class__.__name__) from exc

        result = parse_json_object(text)
        if not isinstance(result, dict):
            logger.error("[extraction] could not parse JSON from response (%d chars)", len(text))
            raise ExtractionError("Could not parse JSON from response")
        try:
            ExtractedReceipt.model_validate(result)
        except ValidationError as exc:
            logger.warning("[extraction] response deviates from receipt schema: %d error(s)", exc.error_count())
        return result


__all__ = ["ExtractionService", "ExtractionError", "InvalidImageError", "DEFAULT_MODELS"]
