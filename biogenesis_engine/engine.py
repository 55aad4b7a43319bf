"""Generation orchestration: creature data, then illustration, then archive."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from .archive.store import ArchiveEntry, ArchiveStore
from .client import BattleResult, GenerationClient
from .errors import InvalidTransition
from .guided import GuidedSelections, synthesize_prompt
from .prompts import resolve_locale
from .runs.events import EventWriter
from .schema import CreatureRecord
from .state import GenerationState, Status

logger = logging.getLogger(__name__)

StateListener = Callable[[GenerationState], None]

UNKNOWN_ERROR_MESSAGE = "Unknown biological synthesis error"


def resolve_prompt(
    prompt: str | None = None,
    guided: GuidedSelections | Mapping[str, str] | None = None,
) -> str:
    if guided is not None:
        return synthesize_prompt(guided if isinstance(guided, GuidedSelections) else dict(guided))
    return (prompt or "").strip()


class GenerationOrchestrator:
    """Drives one creature generation at a time through the state machine.

    Each request takes a sequence number. Results that come back for a request
    other than the latest one are dropped without touching state or the archive.
    """

    def __init__(
        self,
        client: GenerationClient,
        archive: ArchiveStore | None = None,
        events: EventWriter | None = None,
        locale: str = "en",
    ) -> None:
        self.client = client
        self.archive = archive
        self.events = events
        self.locale = resolve_locale(locale)
        self.state = GenerationState()
        self._listeners: list[StateListener] = []
        self._request_seq = 0

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self.events is None:
            return
        try:
            self.events.emit(event_type, **payload)
        except OSError as exc:
            logger.warning("Could not write %s event to %s: %s", event_type, self.events.path, exc)

    def _set_state(self, state: GenerationState) -> None:
        self.state = state
        self._emit(
            "status_changed",
            request_id=state.request_id,
            status=state.status.value,
            entity_id=state.record.engine_data.entity_id if state.record else None,
            error=state.error,
        )
        for listener in list(self._listeners):
            listener(state)

    def _is_current(self, request_id: int) -> bool:
        if request_id == self._request_seq:
            return True
        logger.info("Discarding result for superseded request %s (latest is %s)", request_id, self._request_seq)
        self._emit("generation_discarded", request_id=request_id, latest_request_id=self._request_seq)
        return False

    def _apply(self, request_id: int, target: Status, **changes: Any) -> bool:
        if not self._is_current(request_id):
            return False
        self._set_state(self.state.transition(target, **changes))
        return True

    async def generate(
        self,
        prompt: str | None = None,
        *,
        guided: GuidedSelections | Mapping[str, str] | None = None,
        locale: str | None = None,
    ) -> GenerationState:
        resolved = resolve_prompt(prompt, guided)
        if not resolved:
            logger.debug("Ignoring generate request with an empty prompt.")
            return self.state
        language = resolve_locale(locale or self.locale)

        self._request_seq += 1
        request_id = self._request_seq
        self._emit("generation_started", request_id=request_id, prompt=resolved, locale=language)
        self._set_state(
            self.state.transition(
                Status.GENERATING_DATA,
                record=None,
                image_url=None,
                error=None,
                request_id=request_id,
            )
        )

        try:
            record = await self.client.generate_creature_data(resolved, language)
        except Exception as exc:
            logger.error("Creature data generation failed: %s", exc)
            self._apply(request_id, Status.ERROR, error=str(exc) or UNKNOWN_ERROR_MESSAGE)
            return self.state
        if not self._apply(request_id, Status.GENERATING_IMAGE, record=record):
            return self.state

        try:
            image_url = await self.client.generate_creature_image(record.engine_data.visual_generation_prompt)
        except Exception as exc:
            logger.error("Creature image generation failed: %s", exc)
            self._apply(request_id, Status.ERROR, error=str(exc) or UNKNOWN_ERROR_MESSAGE)
            return self.state
        # An accepted result reaches complete before the archive write starts.
        if not self._apply(request_id, Status.COMPLETE, image_url=image_url):
            return self.state
        completed = self.state
        if image_url and record:
            await self._persist(record, image_url)
        return completed

    async def _persist(self, record: CreatureRecord, image_url: str) -> None:
        if self.archive is None:
            return
        try:
            entry = await asyncio.to_thread(self.archive.save, record, image_url)
        except Exception as exc:
            logger.error("Archive write raised unexpectedly: %s", exc)
            entry = None
        if entry is None:
            self._emit("archive_save_failed", entity_id=record.engine_data.entity_id)
            return
        self._emit("archive_saved", entry_id=entry.id, timestamp=entry.timestamp)

    def load_entry(self, entry: ArchiveEntry) -> GenerationState:
        """Show a stored creature as the current result."""
        if self.state.busy:
            raise InvalidTransition(self.state.status.value, Status.COMPLETE.value)
        loaded = self.state.transition(
            Status.COMPLETE,
            record=entry.record,
            image_url=entry.image_url,
            error=None,
            request_id=self._request_seq + 1,
        )
        self._request_seq += 1
        self._set_state(loaded)
        return self.state

    async def battle(self, entry_a: ArchiveEntry, entry_b: ArchiveEntry, locale: str | None = None) -> BattleResult:
        language = resolve_locale(locale or self.locale)
        self._emit("battle_started", entry_a=entry_a.id, entry_b=entry_b.id, locale=language)
        result = await self.client.simulate_battle(entry_a.record, entry_b.record, language)
        self._emit(
            "battle_finished",
            winner=result.winner,
            analysis_failed=result.analysis_failed,
            has_image=result.image_url is not None,
        )
        return result
