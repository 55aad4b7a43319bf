from __future__ import annotations

import asyncio
import json

import pytest

from biogenesis_engine.client import SENTINEL_SUMMARY, SENTINEL_WINNER, GenerationClient
from biogenesis_engine.errors import GenerationError
from biogenesis_engine.providers.base import InlineImage, StructuredRequest
from biogenesis_engine.schema import BattleReport, CreatureRecord


def _payload(entity_id: str, name: str, visual: str) -> dict:
    return {
        "codex": {
            "scientific_name": "Pyros vorax",
            "common_name": name,
            "biological_description": "Lives near magma vents.",
            "ecological_role": "Scavenger of volcanic slopes.",
        },
        "engine_data": {
            "entity_id": entity_id,
            "taxonomy": {"class": "Reptilia", "diet": "Scavenger"},
            "stats": {"hp": 70, "speed": 30, "intelligence": 20, "stealth": 10},
            "traits": [{"name": "Heat Scales", "effect": "Fire resistant", "biological_basis": "Ceramic keratin"}],
            "weaknesses": ["Cold", "Water"],
            "visual_generation_prompt": visual,
            "behavior_tree": {"idle": "Basks", "combat": "Charges", "mating": "Rumbles"},
        },
    }


class FakeBackend:
    name = "fake"

    def __init__(self, json_text=None, image=None, json_error=None, image_error=None) -> None:
        self.json_text = json_text
        self.image = image
        self.json_error = json_error
        self.image_error = image_error
        self.json_requests: list[StructuredRequest] = []
        self.image_prompts: list[str] = []

    async def generate_json(self, request: StructuredRequest):
        self.json_requests.append(request)
        if self.json_error:
            raise self.json_error
        return self.json_text

    async def generate_image(self, prompt: str):
        self.image_prompts.append(prompt)
        if self.image_error:
            raise self.image_error
        return self.image


def _record(entity_id: str, name: str, visual: str) -> CreatureRecord:
    return CreatureRecord.model_validate(_payload(entity_id, name, visual))


def test_generate_creature_data_sends_locale_rules_and_schema() -> None:
    backend = FakeBackend(json_text=json.dumps(_payload("magma", "Magma Crawler", "a lava lizard")))
    client = GenerationClient(backend)

    record = asyncio.run(client.generate_creature_data("a lizard that eats lava", "ko"))

    assert record.engine_data.entity_id == "magma"
    request = backend.json_requests[0]
    assert request.schema is CreatureRecord
    assert request.temperature == 0.7
    assert "KOREAN" in request.system_instruction
    assert "'visual_generation_prompt' MUST ALWAYS be in ENGLISH" in request.system_instruction
    assert "Latin-style" in request.system_instruction


@pytest.mark.parametrize("json_text", [None, "", "{\"codex\": {}}"])
def test_generate_creature_data_raises_generation_error(json_text) -> None:
    client = GenerationClient(FakeBackend(json_text=json_text))
    with pytest.raises(GenerationError):
        asyncio.run(client.generate_creature_data("anything", "en"))


def test_generate_creature_data_rejects_empty_prompt_and_bad_locale() -> None:
    client = GenerationClient(FakeBackend(json_text="{}"))
    with pytest.raises(GenerationError):
        asyncio.run(client.generate_creature_data("   ", "en"))
    with pytest.raises(ValueError):
        asyncio.run(client.generate_creature_data("a crab", "fr"))


def test_generate_creature_data_timeout_becomes_generation_error() -> None:
    class SlowBackend(FakeBackend):
        async def generate_json(self, request):
            await asyncio.sleep(1)
            return None

    client = GenerationClient(SlowBackend(), timeout_s=0.01)
    with pytest.raises(GenerationError, match="timed out"):
        asyncio.run(client.generate_creature_data("a crab", "en"))


def test_generate_creature_image_timeout_names_the_limit() -> None:
    class SlowImageBackend(FakeBackend):
        async def generate_image(self, prompt):
            await asyncio.sleep(1)
            return None

    client = GenerationClient(SlowImageBackend(), timeout_s=0.01)
    with pytest.raises(GenerationError, match="image generation timed out after 0.01s"):
        asyncio.run(client.generate_creature_image("a lava lizard"))


def test_generate_creature_image_wraps_style_and_returns_data_uri() -> None:
    backend = FakeBackend(image=InlineImage(data=b"\x89PNG", mime_type="image/png"))
    client = GenerationClient(backend)

    image_url = asyncio.run(client.generate_creature_image("a lava lizard"))

    assert image_url == "data:image/png;base64,iVBORw=="
    prompt = backend.image_prompts[0]
    assert "a lava lizard" in prompt
    assert "full body" in prompt
    assert "solid black background" in prompt
    assert "bioluminescent" in prompt


def test_generate_creature_image_without_payload_returns_none() -> None:
    client = GenerationClient(FakeBackend(image=None))
    assert asyncio.run(client.generate_creature_image("a lava lizard")) is None


def test_simulate_battle_returns_report_and_image() -> None:
    report = {"summary": "Magma Crawler wins.", "log": "**Magma Crawler** endures.", "winner": "Magma Crawler"}
    backend = FakeBackend(json_text=json.dumps(report), image=InlineImage(data=b"img", mime_type="image/jpeg"))
    client = GenerationClient(backend)
    a = _record("a", "Magma Crawler", "a lava lizard")
    b = _record("b", "Frost Moth", "an icy moth")

    result = asyncio.run(client.simulate_battle(a, b, "en"))

    assert result.winner == "Magma Crawler"
    assert result.image_url.startswith("data:image/jpeg;base64,")
    request = backend.json_requests[0]
    assert request.schema is BattleReport
    assert "CREATURE A: Magma Crawler" in request.prompt
    assert "CREATURE B: Frost Moth" in request.prompt
    assert "HP 70" in request.prompt
    assert "Weaknesses: Cold, Water" in request.prompt
    assert "a lava lizard" in backend.image_prompts[0]
    assert "an icy moth" in backend.image_prompts[0]


def test_simulate_battle_degrades_when_text_call_raises() -> None:
    backend = FakeBackend(json_error=RuntimeError("boom"), image=InlineImage(data=b"img", mime_type="image/png"))
    client = GenerationClient(backend)
    a = _record("a", "Magma Crawler", "a lava lizard")
    b = _record("b", "Frost Moth", "an icy moth")

    result = asyncio.run(client.simulate_battle(a, b, "en"))

    assert result.summary == SENTINEL_SUMMARY
    assert result.winner == SENTINEL_WINNER
    assert result.analysis_failed
    assert result.image_url is not None


def test_simulate_battle_degrades_on_unparsable_text_and_failed_image() -> None:
    backend = FakeBackend(json_text="not json", image_error=RuntimeError("image down"))
    client = GenerationClient(backend)
    a = _record("a", "Magma Crawler", "a lava lizard")
    b = _record("b", "Frost Moth", "an icy moth")

    result = asyncio.run(client.simulate_battle(a, b, "ko"))

    assert result.summary
    assert result.winner
    assert result.analysis_failed
    assert result.image_url is None


def test_simulate_battle_runs_both_calls_concurrently() -> None:
    class BarrierBackend(FakeBackend):
        def __init__(self) -> None:
            super().__init__()
            self.text_started = asyncio.Event()
            self.image_started = asyncio.Event()

        async def generate_json(self, request):
            self.text_started.set()
            await asyncio.wait_for(self.image_started.wait(), timeout=1)
            return json.dumps({"summary": "Tie broken.", "log": "Close.", "winner": "Frost Moth"})

        async def generate_image(self, prompt):
            self.image_started.set()
            await asyncio.wait_for(self.text_started.wait(), timeout=1)
            return None

    async def scenario():
        backend = BarrierBackend()
        client = GenerationClient(backend)
        a = _record("a", "Magma Crawler", "a lava lizard")
        b = _record("b", "Frost Moth", "an icy moth")
        return await client.simulate_battle(a, b, "en")

    result = asyncio.run(scenario())
    assert result.winner == "Frost Moth"
    assert result.image_url is None
