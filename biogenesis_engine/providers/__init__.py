"""Backend registry."""

from __future__ import annotations

from .base import BackendRegistry
from .dryrun import DryRunBackend
from .gemini import GeminiBackend


def default_registry(
    api_key: str | None = None,
    text_model: str | None = None,
    image_model: str | None = None,
) -> BackendRegistry:
    return BackendRegistry(
        [
            DryRunBackend(),
            GeminiBackend(api_key=api_key, text_model=text_model, image_model=image_model),
        ]
    )
