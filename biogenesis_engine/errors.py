"""Exception types raised by the engine."""

from __future__ import annotations


class BiogenesisError(Exception):
    """Base class for engine errors."""


class GenerationError(BiogenesisError):
    """The service returned nothing usable for a structured-data request."""


class BattleAnalysisError(BiogenesisError):
    """The battle text payload could not be parsed into a result."""


class PersistenceError(BiogenesisError):
    """An archive read or write failed."""


class InvalidTransition(BiogenesisError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move from {current!r} to {target!r}.")
        self.current = current
        self.target = target
