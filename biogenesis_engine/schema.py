"""Wire shapes for structured generation, validated at the service boundary.

Every field is required. The same models are handed to the backend as the
response schema, so a substituted backend must produce exactly this shape.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import BattleAnalysisError, GenerationError


class Codex(BaseModel):
    scientific_name: str
    common_name: str
    biological_description: str
    ecological_role: str


class Taxonomy(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    class_: str = Field(alias="class")
    diet: str


class Stats(BaseModel):
    hp: int
    speed: int
    intelligence: int
    stealth: int


class Trait(BaseModel):
    name: str
    effect: str
    biological_basis: str


class BehaviorTree(BaseModel):
    idle: str
    combat: str
    mating: str


class EngineData(BaseModel):
    entity_id: str
    taxonomy: Taxonomy
    stats: Stats
    traits: list[Trait]
    weaknesses: list[str]
    visual_generation_prompt: str
    behavior_tree: BehaviorTree


class CreatureRecord(BaseModel):
    codex: Codex
    engine_data: EngineData

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


class BattleReport(BaseModel):
    summary: str
    log: str
    winner: str


def parse_creature_payload(text: str | None) -> CreatureRecord:
    if not text or not text.strip():
        raise GenerationError("No creature data returned from the generation service.")
    try:
        return CreatureRecord.model_validate_json(text)
    except ValidationError as exc:
        raise GenerationError(
            f"Creature data did not match the expected shape ({exc.error_count()} errors): {exc.errors()[0]['msg']}"
        ) from exc


def parse_battle_payload(text: str | None) -> BattleReport:
    if not text or not text.strip():
        raise BattleAnalysisError("Empty battle analysis payload.")
    try:
        report = BattleReport.model_validate_json(text)
    except ValidationError as exc:
        raise BattleAnalysisError(f"Battle analysis did not match the expected shape: {exc}") from exc
    if not report.summary.strip() or not report.winner.strip():
        raise BattleAnalysisError("Battle analysis is missing a summary or winner.")
    return report
