"""Prompt builders for creature, image and battle requests."""

from __future__ import annotations

import textwrap

from .schema import CreatureRecord

SUPPORTED_LOCALES = ("en", "ko")
DEFAULT_LOCALE = "en"

_LANGUAGE_NAMES = {"en": "ENGLISH", "ko": "KOREAN"}

CREATURE_IMAGE_STYLE = (
    "3D model character design, t-pose or dynamic pose, full body view, {subject}. "
    "High contrast, bioluminescent details, solid black background (hex #000000), "
    "volumetric lighting, unreal engine 5 render style."
)


def resolve_locale(locale: str | None) -> str:
    normalized = (locale or DEFAULT_LOCALE).strip().lower()
    if normalized == "kr":
        normalized = "ko"
    if normalized not in SUPPORTED_LOCALES:
        raise ValueError(f"Unsupported locale {locale!r}; expected one of {', '.join(SUPPORTED_LOCALES)}.")
    return normalized


def language_name(locale: str) -> str:
    return _LANGUAGE_NAMES[resolve_locale(locale)]


def creature_system_instruction(locale: str) -> str:
    language = language_name(locale)
    return textwrap.dedent(
        f"""\
        Role Definition:
        You are the 'Bio-Genesis Engine', an expert in astrobiology, evolutionary psychology,
        biomechanics and game design. Design a fictional creature from the user's idea,
        balancing scientific plausibility and gameplay mechanics.

        Core Directives:
        1. Logical Consistency: no magic. Every feature needs a biological or chemical basis.
        2. Evolutionary Fit: optimize the creature for its environment.
        3. Game Balance: strong advantages must come with fatal weaknesses.
        4. Language Requirement: the user has selected **{language}**.

        Output Rules:
        - 'codex' fields, 'traits', 'behavior_tree' descriptions and 'weaknesses' MUST be written in {language}.
        - 'taxonomy' values may use {language} or standard English terms.
        - 'stats' are integers between 0 and 100.
        - CRITICAL EXCEPTION: 'visual_generation_prompt' MUST ALWAYS be in ENGLISH, regardless of the selected language.
        - 'scientific_name' MUST ALWAYS use a Latin-style binomial format.

        Output Format:
        Return a JSON object with two sections: 'codex' (natural language) and 'engine_data' (game engine data).
        """
    )


def creature_image_prompt(visual_prompt: str) -> str:
    return CREATURE_IMAGE_STYLE.format(subject=visual_prompt.strip())


def _creature_digest(label: str, record: CreatureRecord) -> str:
    stats = record.engine_data.stats
    traits = ", ".join(trait.name for trait in record.engine_data.traits) or "none"
    weaknesses = ", ".join(record.engine_data.weaknesses) or "none"
    return (
        f"CREATURE {label}: {record.codex.common_name}\n"
        f"- Stats: HP {stats.hp}, Speed {stats.speed}, Intel {stats.intelligence}, Stealth {stats.stealth}\n"
        f"- Traits: {traits}\n"
        f"- Weaknesses: {weaknesses}"
    )


def battle_text_prompt(record_a: CreatureRecord, record_b: CreatureRecord, locale: str) -> str:
    language = "Korean" if resolve_locale(locale) == "ko" else "English"
    return "\n\n".join(
        [
            "Simulate a deadly battle between these two creatures.",
            _creature_digest("A", record_a),
            _creature_digest("B", record_b),
            (
                "Analyze their biological advantages and disadvantages and decide a winner on that basis "
                "(e.g. fire beats ice, speed beats brute force)."
            ),
            (
                "OUTPUT FORMAT:\n"
                "Return a JSON object with the following fields:\n"
                "- summary: a single, punchy sentence summarizing the outcome.\n"
                "- log: a detailed, dramatic battle report (3-4 paragraphs). Use Markdown bold and lists, but NO headers.\n"
                f"- winner: the common name of the winning creature, exactly as given above."
            ),
            f"Language: {language}",
        ]
    )


def battle_image_prompt(record_a: CreatureRecord, record_b: CreatureRecord) -> str:
    return (
        "Cinematic action shot of a fight between two sci-fi creatures. "
        f"Creature 1: {record_a.engine_data.visual_generation_prompt.strip()}. "
        f"Creature 2: {record_b.engine_data.visual_generation_prompt.strip()}. "
        "Action: dynamic combat pose, impact effects, dust particles, motion blur. "
        "Style: Unreal Engine 5 render, hyper-realistic, volumetric lighting, cinematic composition."
    )
