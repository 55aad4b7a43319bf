from __future__ import annotations

import asyncio
import io

from PIL import Image

from biogenesis_engine.client import GenerationClient
from biogenesis_engine.providers import default_registry
from biogenesis_engine.providers.base import StructuredRequest
from biogenesis_engine.providers.dryrun import DryRunBackend
from biogenesis_engine.schema import BattleReport, CreatureRecord, parse_creature_payload


def test_dryrun_creature_is_valid_and_deterministic() -> None:
    backend = DryRunBackend()
    request = StructuredRequest(prompt="a moth made of frost", schema=CreatureRecord)
    first = asyncio.run(backend.generate_json(request))
    second = asyncio.run(backend.generate_json(request))

    assert first == second
    record = parse_creature_payload(first)
    assert record.engine_data.entity_id.startswith("dryrun-")
    assert 0 <= record.engine_data.stats.hp <= 100


def test_dryrun_image_is_png_of_requested_size() -> None:
    backend = DryRunBackend(image_size=(128, 96))
    image = asyncio.run(backend.generate_image("a moth made of frost"))

    assert image is not None
    assert image.mime_type == "image/png"
    with Image.open(io.BytesIO(image.data)) as decoded:
        assert decoded.size == (128, 96)
    assert image.to_data_uri().startswith("data:image/png;base64,")


def test_dryrun_battle_picks_one_of_the_named_creatures() -> None:
    backend = DryRunBackend()
    prompt = "CREATURE A: Frost Moth\n- Stats: HP 1\n\nCREATURE B: Magma Crawler\n- Stats: HP 2"
    text = asyncio.run(backend.generate_json(StructuredRequest(prompt=prompt, schema=BattleReport)))
    report = BattleReport.model_validate_json(text)
    assert report.winner in {"Frost Moth", "Magma Crawler"}


def test_full_client_flow_offline() -> None:
    backend = default_registry().get("dryrun")
    client = GenerationClient(backend)

    async def scenario():
        record = await client.generate_creature_data("a moth made of frost", "en")
        image_url = await client.generate_creature_image(record.engine_data.visual_generation_prompt)
        rival = await client.generate_creature_data("a lizard that eats lava", "en")
        battle = await client.simulate_battle(record, rival, "en")
        return record, image_url, rival, battle

    record, image_url, rival, battle = asyncio.run(scenario())
    assert image_url is not None
    assert battle.winner in {record.codex.common_name, rival.codex.common_name}
    assert not battle.analysis_failed
