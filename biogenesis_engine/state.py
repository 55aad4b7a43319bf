"""Generation state container and its transition table."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .errors import InvalidTransition
from .schema import CreatureRecord


class Status(str, Enum):
    IDLE = "idle"
    GENERATING_DATA = "generating_data"
    GENERATING_IMAGE = "generating_image"
    COMPLETE = "complete"
    ERROR = "error"


# A new request may restart from any state, so GENERATING_DATA is reachable everywhere.
# COMPLETE is also reachable from resting states when an archive entry is loaded for display.
ALLOWED_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.IDLE: frozenset({Status.GENERATING_DATA, Status.COMPLETE}),
    Status.GENERATING_DATA: frozenset({Status.GENERATING_DATA, Status.GENERATING_IMAGE, Status.ERROR}),
    Status.GENERATING_IMAGE: frozenset({Status.GENERATING_DATA, Status.COMPLETE, Status.ERROR}),
    Status.COMPLETE: frozenset({Status.GENERATING_DATA, Status.COMPLETE}),
    Status.ERROR: frozenset({Status.GENERATING_DATA, Status.COMPLETE}),
}

IN_FLIGHT = frozenset({Status.GENERATING_DATA, Status.GENERATING_IMAGE})


@dataclass(frozen=True)
class GenerationState:
    status: Status = Status.IDLE
    record: CreatureRecord | None = None
    image_url: str | None = None
    error: str | None = None
    request_id: int = 0

    @property
    def busy(self) -> bool:
        return self.status in IN_FLIGHT

    def transition(self, target: Status, **changes: object) -> "GenerationState":
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(self.status.value, target.value)
        return replace(self, status=target, **changes)
