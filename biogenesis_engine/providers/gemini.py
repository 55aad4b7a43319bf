"""Gemini backend."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

try:
    from google import genai  # type: ignore
    from google.genai import errors as genai_errors  # type: ignore
    from google.genai import types  # type: ignore
except ImportError:  # pragma: no cover
    genai = None  # type: ignore
    genai_errors = None  # type: ignore
    types = None  # type: ignore

from .base import InlineImage, StructuredRequest

logger = logging.getLogger(__name__)

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class GeminiBackend:
    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        text_model: str | None = None,
        image_model: str | None = None,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.text_model = text_model or DEFAULT_TEXT_MODEL
        self.image_model = image_model or DEFAULT_IMAGE_MODEL
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY or GOOGLE_API_KEY not set.")
        if genai is None:
            raise RuntimeError("google-genai package not installed. Run: pip install google-genai")
        self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_json(self, request: StructuredRequest) -> str | None:
        client = self._get_client()
        config = _build_structured_config(request)
        response = await client.aio.models.generate_content(
            model=self.text_model,
            contents=request.prompt,
            config=config,
        )
        _log_usage(self.text_model, response)
        return _extract_text(response)

    async def generate_image(self, prompt: str) -> InlineImage | None:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.image_model,
                contents=[types.Part(text=prompt)],
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except genai_errors.ClientError as exc:
            logger.warning("Gemini rejected image config (%s); retrying with default config.", exc)
            response = await client.aio.models.generate_content(
                model=self.image_model,
                contents=[types.Part(text=prompt)],
            )
        _log_usage(self.image_model, response)
        candidates = getattr(response, "candidates", []) or []
        blobs = _extract_image_bytes(candidates)
        if not blobs:
            logger.info("Gemini returned no image parts for model %s.", self.image_model)
            return None
        first = blobs[0]
        return InlineImage(data=first["bytes"], mime_type=first.get("mime_type") or "image/png")


def _build_structured_config(request: StructuredRequest) -> Any:
    config_kwargs: dict[str, Any] = {
        "response_mime_type": "application/json",
        "response_schema": request.schema,
    }
    if request.system_instruction:
        config_kwargs["system_instruction"] = request.system_instruction
    if request.temperature is not None:
        config_kwargs["temperature"] = request.temperature
    return types.GenerateContentConfig(**config_kwargs)


def _extract_text(response: Any) -> str | None:
    try:
        text = getattr(response, "text", None)
    except ValueError:
        text = None
    if isinstance(text, str) and text.strip():
        return text
    chunks: list[str] = []
    for candidate in getattr(response, "candidates", []) or []:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or getattr(candidate, "parts", None) or []
        for part in parts:
            chunk = getattr(part, "text", None)
            if isinstance(chunk, str) and chunk.strip():
                chunks.append(chunk)
    joined = "".join(chunks).strip()
    return joined or None


def _extract_image_bytes(candidates: Sequence[Any]) -> list[dict[str, Any]]:
    blobs: list[dict[str, Any]] = []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or getattr(candidate, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if data is None:
                continue
            mime_type = getattr(inline_data, "mime_type", None)
            if isinstance(data, str):
                data = data.encode("latin1")
            if isinstance(data, (bytes, bytearray)):
                blobs.append({"bytes": bytes(data), "mime_type": mime_type})
    return blobs


def _to_dict(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(k): _to_dict(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dict(v) for v in value]
    if hasattr(value, "model_dump"):
        return _to_dict(value.model_dump(exclude_none=True))
    return str(value)


def _extract_usage_summary(response: Any) -> Mapping[str, Any] | None:
    if response is None:
        return None
    for key in ("usage_metadata", "usage"):
        if isinstance(response, Mapping):
            raw = response.get(key)
        else:
            raw = getattr(response, key, None)
        mapped = _to_dict(raw)
        if isinstance(mapped, Mapping):
            return dict(mapped)
    return None


def _log_usage(model: str, response: Any) -> None:
    usage = _extract_usage_summary(response)
    if usage:
        logger.debug("Gemini %s usage: %s", model, usage)
