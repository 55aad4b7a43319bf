"""Dry-run backend (offline).

Produces deterministic placeholder creatures, battle reports and
illustrations so the full pipeline can be exercised without an API key.
"""

from __future__ import annotations

import hashlib
import io
import json
import textwrap
from typing import Any

from PIL import Image, ImageDraw, ImageFont

from ..schema import BattleReport, CreatureRecord
from .base import InlineImage, StructuredRequest

_GENERA = ("Abyssus", "Lumina", "Ferrox", "Glacies", "Pyros", "Umbra", "Sylva", "Vitrea")
_EPITHETS = ("profundus", "radians", "velox", "silens", "vorax", "cristatus", "mirabilis")
_CLASSES = ("Cephalopoda", "Arthropoda", "Reptilia", "Mammalia", "Silicoforma", "Mycetozoa")
_DIETS = ("Carnivore", "Herbivore", "Omnivore", "Photosynthesis", "Scavenger")


class DryRunBackend:
    name = "dryrun"

    def __init__(self, image_size: tuple[int, int] = (512, 512)) -> None:
        self.image_size = image_size

    async def generate_json(self, request: StructuredRequest) -> str | None:
        digest = _digest(request.prompt)
        if request.schema is CreatureRecord:
            return json.dumps(_fake_creature(request.prompt, digest))
        if request.schema is BattleReport:
            return json.dumps(_fake_battle(request.prompt, digest))
        raise RuntimeError(f"dryrun backend has no fixture for {request.schema.__name__}")

    async def generate_image(self, prompt: str) -> InlineImage | None:
        digest = _digest(prompt)
        accent = (digest[0], max(96, digest[1]), max(96, digest[2]))
        image = Image.new("RGB", self.image_size, (0, 0, 0))
        draw = ImageDraw.Draw(image)
        width, height = self.image_size
        radius = min(width, height) // 4
        center = (width // 2, height // 2)
        draw.ellipse(
            (center[0] - radius, center[1] - radius, center[0] + radius, center[1] + radius),
            outline=accent,
            width=4,
        )
        font = ImageFont.load_default()
        caption = "\n".join(textwrap.wrap(f"dryrun: {prompt[:120]}", width=48))
        draw.text((16, 16), caption, fill=accent, font=font)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return InlineImage(data=buffer.getvalue(), mime_type="image/png")


def _digest(text: str) -> bytes:
    return hashlib.sha256(text.encode("utf-8")).digest()


def _pick(options: tuple[str, ...], byte: int) -> str:
    return options[byte % len(options)]


def _stat(byte: int) -> int:
    return 20 + byte % 81


def _fake_creature(prompt: str, digest: bytes) -> dict[str, Any]:
    genus = _pick(_GENERA, digest[0])
    epithet = _pick(_EPITHETS, digest[1])
    common = f"{genus} {_pick(('Stalker', 'Drifter', 'Warden', 'Grazer', 'Lurker'), digest[2])}"
    subject = prompt.strip()[:80] or "an unknown organism"
    return {
        "codex": {
            "scientific_name": f"{genus} {epithet}",
            "common_name": common,
            "biological_description": f"Placeholder organism synthesized offline from: {subject}.",
            "ecological_role": "Mid-tier predator occupying an otherwise empty niche.",
        },
        "engine_data": {
            "entity_id": f"dryrun-{digest.hex()[:12]}",
            "taxonomy": {"class": _pick(_CLASSES, digest[3]), "diet": _pick(_DIETS, digest[4])},
            "stats": {
                "hp": _stat(digest[5]),
                "speed": _stat(digest[6]),
                "intelligence": _stat(digest[7]),
                "stealth": _stat(digest[8]),
            },
            "traits": [
                {
                    "name": "Chromatophore Skin",
                    "effect": "Blends into surroundings when motionless.",
                    "biological_basis": "Pigment sacs under neural control.",
                },
                {
                    "name": "Pressure Sense",
                    "effect": "Detects movement through the ground.",
                    "biological_basis": "Mechanoreceptors along the lateral line.",
                },
            ],
            "weaknesses": ["Desiccation", "Low-frequency sound"],
            "visual_generation_prompt": f"A {genus.lower()} creature, {epithet}, inspired by {subject}",
            "behavior_tree": {
                "idle": "Rests in sheltered crevices.",
                "combat": "Ambushes from cover, then retreats.",
                "mating": "Seasonal bioluminescent display.",
            },
        },
    }


def _fake_battle(prompt: str, digest: bytes) -> dict[str, Any]:
    names = [
        line.split(":", 1)[1].strip()
        for line in prompt.splitlines()
        if line.startswith("CREATURE ") and ":" in line
    ]
    if len(names) < 2:
        names = ["Creature A", "Creature B"]
    winner = names[digest[0] % 2]
    loser = names[1 - digest[0] % 2]
    return {
        "summary": f"{winner} outlasts {loser} in a brief, brutal clash.",
        "log": (
            f"The two organisms circle each other warily.\n\n"
            f"**{winner}** exploits an opening as {loser} overcommits.\n\n"
            f"The fight ends with **{winner}** standing."
        ),
        "winner": winner,
    }
