"""Shared utilities for the Bio-Genesis engine."""

from __future__ import annotations

import base64
import binascii
import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path
import tomllib
from typing import Any, Mapping


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def now_epoch_ms() -> int:
    return int(time.time() * 1000)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def sanitize_payload(payload: Any) -> Any:
    """Strip bulky image bytes and data URIs before a payload is logged or written to events."""
    if payload is None:
        return None
    if isinstance(payload, str):
        if payload.startswith("data:"):
            return f"<data-uri:{len(payload)}>"
        return payload
    if isinstance(payload, (int, float, bool)):
        return payload
    if isinstance(payload, bytes):
        return f"<bytes:{len(payload)}>"
    if isinstance(payload, Mapping):
        sanitized: dict[str, Any] = {}
        for key, value in payload.items():
            lowered = str(key).lower()
            if lowered in {"image", "image_bytes", "data", "image_url"} and value:
                sanitized[str(key)] = "<omitted>"
                continue
            sanitized[str(key)] = sanitize_payload(value)
        return sanitized
    if isinstance(payload, (list, tuple)):
        return [sanitize_payload(item) for item in payload]
    return str(payload)


def to_data_uri(data: bytes, mime_type: str | None) -> str:
    mime = mime_type or "image/png"
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("Not a data URI.")
    header, encoded = uri[5:].split(",", 1)
    if not header.endswith(";base64"):
        raise ValueError("Only base64 data URIs are supported.")
    mime_type = header[: -len(";base64")] or "application/octet-stream"
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Malformed base64 payload: {exc}") from exc
    return data, mime_type


def extension_for_mime(mime_type: str | None) -> str:
    normalized = (mime_type or "").strip().lower()
    if normalized.startswith("image/"):
        normalized = normalized.split("/", 1)[1]
    if normalized in {"jpeg", "jpg"}:
        return "jpg"
    if normalized == "webp":
        return "webp"
    return "png"


def write_data_uri(uri: str, path: Path) -> Path:
    data, mime_type = decode_data_uri(uri)
    target = path if path.suffix else path.with_suffix(f".{extension_for_mime(mime_type)}")
    ensure_dir(target.parent)
    target.write_bytes(data)
    return target


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def getenv_flag(key: str, default: bool = False) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def getenv_float(key: str) -> float | None:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def load_dotenv(path: Path | None = None, override: bool = False) -> bool:
    env_path = path or _default_env_path()
    if not env_path.exists():
        return False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        if value and value[0] == value[-1] and value.startswith(("\"", "'")):
            value = value[1:-1]
        if not override and key in os.environ:
            continue
        os.environ[key] = value
    return True


def _default_env_path() -> Path:
    cwd = Path.cwd()
    repo_root = _find_repo_root(cwd)
    if repo_root:
        env_path = repo_root / ".env"
        if env_path.exists():
            return env_path
    return cwd / ".env"


def _find_repo_root(start: Path) -> Path | None:
    for current in (start,) + tuple(start.parents):
        pyproject = current / "pyproject.toml"
        if pyproject.exists():
            try:
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError:
                continue
            if data.get("project", {}).get("name") == "biogenesis":
                return current
    return None
