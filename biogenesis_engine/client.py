"""Generation client: domain requests against a generation backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, TypeVar

from .errors import BattleAnalysisError, GenerationError
from .prompts import (
    battle_image_prompt,
    battle_text_prompt,
    creature_image_prompt,
    creature_system_instruction,
    resolve_locale,
)
from .providers.base import GenerationBackend, StructuredRequest
from .schema import BattleReport, CreatureRecord, parse_battle_payload, parse_creature_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")

CREATURE_TEMPERATURE = 0.7
BATTLE_TEMPERATURE = 0.8

SENTINEL_SUMMARY = "Analysis Failed"
SENTINEL_LOG = "Could not generate log."
SENTINEL_WINNER = "Unknown"


@dataclass(frozen=True)
class BattleResult:
    summary: str
    log: str
    winner: str
    image_url: str | None = None

    @property
    def analysis_failed(self) -> bool:
        return self.summary == SENTINEL_SUMMARY and self.winner == SENTINEL_WINNER


def sentinel_battle_result(image_url: str | None = None) -> BattleResult:
    return BattleResult(summary=SENTINEL_SUMMARY, log=SENTINEL_LOG, winner=SENTINEL_WINNER, image_url=image_url)


class GenerationClient:
    def __init__(self, backend: GenerationBackend, timeout_s: float | None = None) -> None:
        self.backend = backend
        self.timeout_s = timeout_s

    async def _call(self, awaitable: Awaitable[T]) -> T:
        if self.timeout_s is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.timeout_s)

    async def generate_creature_data(self, prompt: str, locale: str) -> CreatureRecord:
        if not prompt or not prompt.strip():
            raise GenerationError("Prompt must not be empty.")
        request = StructuredRequest(
            prompt=prompt.strip(),
            schema=CreatureRecord,
            system_instruction=creature_system_instruction(resolve_locale(locale)),
            temperature=CREATURE_TEMPERATURE,
        )
        try:
            text = await self._call(self.backend.generate_json(request))
        except asyncio.TimeoutError as exc:
            raise GenerationError(f"Creature generation timed out after {self.timeout_s}s.") from exc
        record = parse_creature_payload(text)
        logger.info("Generated creature %r (%s)", record.codex.common_name, record.engine_data.entity_id)
        return record

    async def generate_creature_image(self, visual_prompt: str) -> str | None:
        try:
            image = await self._call(self.backend.generate_image(creature_image_prompt(visual_prompt)))
        except asyncio.TimeoutError as exc:
            raise GenerationError(f"Creature image generation timed out after {self.timeout_s}s.") from exc
        if image is None:
            logger.info("No visual returned for creature image request.")
            return None
        return image.to_data_uri()

    async def simulate_battle(
        self,
        record_a: CreatureRecord,
        record_b: CreatureRecord,
        locale: str,
    ) -> BattleResult:
        """Narrate a battle between two creatures.

        The analysis and the scene illustration are requested concurrently. Neither
        half can fail the call: an unusable analysis becomes the sentinel result and
        a failed illustration becomes ``image_url=None``.
        """
        try:
            text_prompt = battle_text_prompt(record_a, record_b, locale)
        except ValueError as exc:
            logger.error("Battle simulation aborted: %s", exc)
            return sentinel_battle_result()
        request = StructuredRequest(
            prompt=text_prompt,
            schema=BattleReport,
            temperature=BATTLE_TEMPERATURE,
        )
        text_outcome, image_outcome = await asyncio.gather(
            self._call(self.backend.generate_json(request)),
            self._call(self.backend.generate_image(battle_image_prompt(record_a, record_b))),
            return_exceptions=True,
        )

        image_url: str | None = None
        if isinstance(image_outcome, BaseException):
            logger.warning("Battle scene generation failed: %s", image_outcome)
        elif image_outcome is not None:
            image_url = image_outcome.to_data_uri()

        if isinstance(text_outcome, BaseException):
            logger.warning("Battle analysis request failed: %s", text_outcome)
            return sentinel_battle_result(image_url)
        try:
            report = parse_battle_payload(text_outcome)
        except BattleAnalysisError as exc:
            logger.warning("Battle analysis unusable: %s", exc)
            return sentinel_battle_result(image_url)
        return BattleResult(
            summary=report.summary.strip(),
            log=report.log,
            winner=report.winner.strip(),
            image_url=image_url,
        )
