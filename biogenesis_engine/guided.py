"""Guided mode: category tags that synthesize a generation prompt."""

from __future__ import annotations

from dataclasses import dataclass, field

CATEGORIES = ("habitat", "diet", "structure", "trait")

GUIDED_OPTIONS: dict[str, tuple[str, ...]] = {
    "habitat": ("Forest", "Ocean", "Desert", "Tundra", "Volcano", "Space", "Urban"),
    "diet": ("Carnivore", "Herbivore", "Omnivore", "Photosynthesis", "Energy", "Scavenger"),
    "structure": ("Mammalian", "Reptilian", "Insectoid", "Avian", "Amorphous", "Silicon", "Mechanical"),
    "trait": ("Bioluminescent", "Armored", "Speed", "Stealth", "Toxic", "Psionic"),
}

FACET_LABELS = {
    "habitat": "Habitat",
    "diet": "Diet",
    "structure": "Biological Structure",
    "trait": "Key Trait",
}

FALLBACK_PROMPT = "A random, scientifically plausible alien creature."


@dataclass
class GuidedSelections:
    values: dict[str, str] = field(default_factory=lambda: {category: "" for category in CATEGORIES})

    def toggle(self, category: str, option_id: str) -> None:
        """Select an option, or clear it when it is already selected."""
        if category not in CATEGORIES:
            raise KeyError(f"Unknown guided category: {category}")
        current = self.values.get(category, "")
        self.values[category] = "" if current == option_id else option_id

    def selected(self) -> dict[str, str]:
        return {category: self.values[category] for category in CATEGORIES if self.values.get(category)}


def synthesize_prompt(selections: GuidedSelections | dict[str, str]) -> str:
    values = selections.values if isinstance(selections, GuidedSelections) else selections
    parts = []
    for category in CATEGORIES:
        value = str(values.get(category) or "").strip()
        if value:
            parts.append(f"{FACET_LABELS[category]}: {value}")
    if not parts:
        return FALLBACK_PROMPT
    return (
        "Design a scientifically plausible creature with these characteristics: "
        f"{', '.join(parts)}. Ensure it fits its environment perfectly."
    )
