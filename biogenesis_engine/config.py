"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .prompts import resolve_locale
from .providers.gemini import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL
from .utils import getenv_float

DEFAULT_ARCHIVE_PATH = Path.home() / ".biogenesis" / "archive.sqlite"


@dataclass
class Settings:
    api_key: str | None = None
    backend: str = "gemini"
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    archive_path: Path = DEFAULT_ARCHIVE_PATH
    locale: str = "en"
    events_path: Path | None = None
    request_timeout_s: float | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        archive_raw = os.getenv("BIOGENESIS_ARCHIVE_PATH")
        events_raw = os.getenv("BIOGENESIS_EVENTS_PATH")
        return cls(
            api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            backend=(os.getenv("BIOGENESIS_BACKEND") or "gemini").strip().lower(),
            text_model=os.getenv("BIOGENESIS_TEXT_MODEL") or DEFAULT_TEXT_MODEL,
            image_model=os.getenv("BIOGENESIS_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            archive_path=Path(archive_raw).expanduser() if archive_raw else DEFAULT_ARCHIVE_PATH,
            locale=resolve_locale(os.getenv("BIOGENESIS_LOCALE")),
            events_path=Path(events_raw).expanduser() if events_raw else None,
            request_timeout_s=getenv_float("BIOGENESIS_REQUEST_TIMEOUT_S"),
            log_level=(os.getenv("BIOGENESIS_LOG_LEVEL") or "WARNING").strip().upper(),
        )
