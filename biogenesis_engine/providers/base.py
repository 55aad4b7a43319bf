"""Backend base classes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from pydantic import BaseModel

from ..utils import to_data_uri


@dataclass(frozen=True)
class StructuredRequest:
    prompt: str
    schema: type[BaseModel]
    system_instruction: str | None = None
    temperature: float | None = None


@dataclass(frozen=True)
class InlineImage:
    data: bytes
    mime_type: str | None = None

    def to_data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)


class GenerationBackend(Protocol):
    name: str

    async def generate_json(self, request: StructuredRequest) -> str | None:
        """Return the raw JSON text for ``request.schema``, or None when the service sent nothing."""
        ...

    async def generate_image(self, prompt: str) -> InlineImage | None:
        """Return the first image the service produced, or None when it produced none."""
        ...


class BackendRegistry:
    def __init__(self, backends: Iterable[GenerationBackend]) -> None:
        self._backends = {backend.name: backend for backend in backends}

    def get(self, name: str) -> GenerationBackend | None:
        return self._backends.get(name)

    def list(self) -> list[str]:
        return sorted(self._backends.keys())
