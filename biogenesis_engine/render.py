"""Terminal rendering for creatures, archive listings and battles."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from .archive.store import ArchiveEntry
from .client import BattleResult
from .schema import CreatureRecord
from .state import GenerationState, Status

_BOLD = "\x1b[1m"
_CYAN = "\x1b[36m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)

STATUS_LABELS = {
    Status.IDLE: "Awaiting parameters",
    Status.GENERATING_DATA: "Synthesizing genome",
    Status.GENERATING_IMAGE: "Rendering specimen",
    Status.COMPLETE: "Synthesis complete",
    Status.ERROR: "Synthesis failed",
}

NO_VISUAL = "[no visual] The service returned no illustration for this specimen."


def status_label(state: GenerationState) -> str:
    return STATUS_LABELS[state.status]


def render_markup(text: str, ansi: bool = True) -> str:
    """Render ``**bold**`` emphasis and keep paragraph breaks."""
    paragraphs = [para.strip() for para in re.split(r"\n\s*\n", text or "") if para.strip()]
    replacement = rf"{_BOLD}{_CYAN}\1{_RESET}" if ansi else r"\1"
    return "\n\n".join(_BOLD_RE.sub(replacement, para) for para in paragraphs)


def stat_bar(value: int, width: int = 20) -> str:
    clamped = max(0, min(100, int(value)))
    filled = round(clamped * width / 100)
    return f"{'█' * filled}{'░' * (width - filled)} {clamped:>3}"


def format_timestamp(timestamp_ms: int) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M UTC")


def describe_image(image_url: str | None) -> str:
    if not image_url:
        return NO_VISUAL
    header = image_url.split(",", 1)[0]
    mime = header[5:].split(";", 1)[0] if header.startswith("data:") else "unknown"
    return f"[visual] {mime}, {len(image_url)} chars"


def format_creature(record: CreatureRecord, image_url: str | None = None, ansi: bool = True) -> str:
    codex = record.codex
    engine = record.engine_data
    bold = _BOLD if ansi else ""
    reset = _RESET if ansi else ""
    lines = [
        f"{bold}{codex.common_name}{reset}  ({codex.scientific_name})",
        f"id: {engine.entity_id or '-'}  class: {engine.taxonomy.class_}  diet: {engine.taxonomy.diet}",
        "",
        codex.biological_description,
        "",
        f"Ecological role: {codex.ecological_role}",
        "",
        f"HP           {stat_bar(engine.stats.hp)}",
        f"Speed        {stat_bar(engine.stats.speed)}",
        f"Intelligence {stat_bar(engine.stats.intelligence)}",
        f"Stealth      {stat_bar(engine.stats.stealth)}",
        "",
        "Traits:",
    ]
    for trait in engine.traits:
        lines.append(f"  - {trait.name}: {trait.effect} ({trait.biological_basis})")
    lines.append("Weaknesses:")
    for weakness in engine.weaknesses:
        lines.append(f"  - {weakness}")
    lines.extend(
        [
            "Behavior:",
            f"  idle:   {engine.behavior_tree.idle}",
            f"  combat: {engine.behavior_tree.combat}",
            f"  mating: {engine.behavior_tree.mating}",
            "",
            describe_image(image_url),
        ]
    )
    return "\n".join(lines)


def format_archive_list(entries: list[ArchiveEntry]) -> str:
    if not entries:
        return "No creature data found in archives."
    lines = [f"Creature Archives ({len(entries)})"]
    for entry in entries:
        codex = entry.record.codex
        lines.append(
            f"{entry.id:<24} {format_timestamp(entry.timestamp)}  "
            f"{codex.common_name} [{entry.record.engine_data.taxonomy.class_}]"
        )
    return "\n".join(lines)


def format_battle(result: BattleResult, ansi: bool = True) -> str:
    bold = _BOLD if ansi else ""
    reset = _RESET if ansi else ""
    grey = _GREY if ansi else ""
    lines = [
        f"{bold}WINNER: {result.winner}{reset}",
        result.summary,
        "",
        f"{grey}DEEP COMBAT ANALYSIS{reset}",
        render_markup(result.log, ansi=ansi),
        "",
        describe_image(result.image_url),
    ]
    return "\n".join(lines)
