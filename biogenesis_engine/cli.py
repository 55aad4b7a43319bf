"""Bio-Genesis CLI entrypoints."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path

from .archive.store import ArchiveStore
from .cli_progress import ProgressTicker
from .client import GenerationClient
from .config import Settings
from .engine import GenerationOrchestrator
from .guided import CATEGORIES, FACET_LABELS, GUIDED_OPTIONS, GuidedSelections
from .prompts import SUPPORTED_LOCALES, resolve_locale
from .providers import default_registry
from .render import format_archive_list, format_battle, format_creature, status_label
from .runs.events import EventWriter
from .state import Status
from .utils import load_dotenv, write_data_uri

logger = logging.getLogger(__name__)

MIN_BATTLE_ENTRIES = 2


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--backend", choices=("gemini", "dryrun"), help="Generation backend")
    common.add_argument("--archive", help="Path to the archive database")
    common.add_argument("--locale", choices=SUPPORTED_LOCALES, help="Output language for narrative text")
    common.add_argument("--events", help="Append session events to this JSONL file")
    common.add_argument("--log-level", dest="log_level", help="Logging level (DEBUG, INFO, WARNING, ...)")

    parser = argparse.ArgumentParser(prog="biogenesis", description="Bio-Genesis creature engine")
    sub = parser.add_subparsers(dest="command")

    generate = sub.add_parser("generate", parents=[common], help="Generate a new creature")
    generate.add_argument("--prompt", help="Free-text creature idea")
    generate.add_argument("--guided", action="store_true", help="Build the prompt from category tags")
    for category in CATEGORIES:
        generate.add_argument(f"--{category}", choices=GUIDED_OPTIONS[category], help=FACET_LABELS[category])
    generate.add_argument("--save-image", dest="save_image", help="Write the illustration to this path")

    archive = sub.add_parser("archive", parents=[common], help="Browse stored creatures")
    archive_sub = archive.add_subparsers(dest="archive_command")
    archive_sub.add_parser("list", help="List stored creatures, newest first")
    show = archive_sub.add_parser("show", help="Show one stored creature")
    show.add_argument("entry_id")
    delete = archive_sub.add_parser("delete", help="Delete one stored creature")
    delete.add_argument("entry_id")
    clear = archive_sub.add_parser("clear", help="Delete every stored creature")
    clear.add_argument("--yes", action="store_true", help="Confirm clearing the archive")
    dump = archive_sub.add_parser("dump", help="Print a creature's structured data as JSON")
    dump.add_argument("entry_id")
    dump.add_argument("--image", help="Also write the illustration to this path")

    battle = sub.add_parser("battle", parents=[common], help="Simulate a battle between two stored creatures")
    battle.add_argument("entry_a")
    battle.add_argument("entry_b")
    battle.add_argument("--save-image", dest="save_image", help="Write the battle scene to this path")

    sub.add_parser("options", help="List guided-mode categories and options")

    return parser


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "backend", None):
        settings.backend = args.backend
    if getattr(args, "archive", None):
        settings.archive_path = Path(args.archive).expanduser()
    if getattr(args, "locale", None):
        settings.locale = resolve_locale(args.locale)
    if getattr(args, "events", None):
        settings.events_path = Path(args.events).expanduser()
    if getattr(args, "log_level", None):
        settings.log_level = args.log_level.strip().upper()
    return settings


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s:%(levelname)s:%(name)s: %(message)s",
    )


def _build_orchestrator(settings: Settings) -> GenerationOrchestrator:
    registry = default_registry(
        api_key=settings.api_key,
        text_model=settings.text_model,
        image_model=settings.image_model,
    )
    backend = registry.get(settings.backend)
    if backend is None:
        raise RuntimeError(f"Unknown backend {settings.backend!r}; choose from {', '.join(registry.list())}.")
    events = None
    if settings.events_path is not None:
        events = EventWriter(settings.events_path, uuid.uuid4().hex)
    return GenerationOrchestrator(
        GenerationClient(backend, timeout_s=settings.request_timeout_s),
        archive=ArchiveStore(settings.archive_path),
        events=events,
        locale=settings.locale,
    )


def _guided_selections(args: argparse.Namespace) -> GuidedSelections | None:
    chosen = {category: getattr(args, category, None) for category in CATEGORIES}
    if not args.guided and not any(chosen.values()):
        return None
    selections = GuidedSelections()
    for category, option_id in chosen.items():
        if option_id:
            selections.toggle(category, option_id)
    return selections


def _save_image(image_url: str | None, target: str | None) -> bool:
    if not target:
        return True
    if not image_url:
        print("No illustration to save.")
        return True
    try:
        path = write_data_uri(image_url, Path(target).expanduser())
    except (ValueError, OSError) as exc:
        logger.debug("Illustration write failed", exc_info=True)
        print(f"Could not save illustration to {target}: {exc}")
        return False
    print(f"Illustration written to {path}")
    return True


def _handle_generate(args: argparse.Namespace, settings: Settings) -> int:
    guided = _guided_selections(args)
    if guided is None and not (args.prompt or "").strip():
        print("Provide --prompt, or use --guided with optional category tags.")
        return 2
    orchestrator = _build_orchestrator(settings)
    ticker = ProgressTicker(status_label(orchestrator.state), done_label="Synthesized in")
    orchestrator.subscribe(lambda state: ticker.update_label(status_label(state)))
    ticker.start_ticking()
    try:
        state = asyncio.run(orchestrator.generate(args.prompt, guided=guided))
    finally:
        ticker.stop(done=orchestrator.state.status == Status.COMPLETE)
    if state.status == Status.ERROR:
        print(f"Generation failed: {state.error}")
        return 1
    if state.record is None:
        return 1
    print(format_creature(state.record, state.image_url, ansi=sys.stdout.isatty()))
    return 0 if _save_image(state.image_url, args.save_image) else 1


def _handle_archive(args: argparse.Namespace, settings: Settings) -> int:
    store = ArchiveStore(settings.archive_path)
    command = args.archive_command or "list"
    ansi = sys.stdout.isatty()
    if command == "list":
        print(format_archive_list(store.list_all()))
        return 0
    if command == "clear":
        if not args.yes:
            print("Refusing to clear the archive without --yes.")
            return 2
        store.clear_all()
        print("Archive cleared.")
        return 0
    if command == "delete":
        store.delete_one(args.entry_id)
        print(f"Deleted {args.entry_id} (if it existed).")
        return 0
    entry = store.get(args.entry_id)
    if entry is None:
        print(f"No archived creature with id {args.entry_id!r}.")
        return 1
    if command == "show":
        state = _build_orchestrator(settings).load_entry(entry)
        print(format_creature(state.record, state.image_url, ansi=ansi))
        return 0
    print(entry.record.to_json(indent=2))
    if args.image and not _save_image(entry.image_url, args.image):
        return 1
    return 0


def _handle_battle(args: argparse.Namespace, settings: Settings) -> int:
    store = ArchiveStore(settings.archive_path)
    if store.count() < MIN_BATTLE_ENTRIES:
        print("Insufficient biomass. Archive at least 2 creatures to enable simulation.")
        return 1
    if args.entry_a == args.entry_b:
        print("Pick two different creatures.")
        return 2
    entry_a = store.get(args.entry_a)
    entry_b = store.get(args.entry_b)
    missing = [entry_id for entry_id, entry in ((args.entry_a, entry_a), (args.entry_b, entry_b)) if entry is None]
    if missing:
        print(f"No archived creature with id: {', '.join(missing)}")
        return 1
    orchestrator = _build_orchestrator(settings)
    ticker = ProgressTicker("Analyzing combat & rendering scene", done_label="Simulated in")
    ticker.start_ticking()
    try:
        result = asyncio.run(orchestrator.battle(entry_a, entry_b))
    finally:
        ticker.stop(done=True)
    print(
        f"{entry_a.record.codex.common_name} VS {entry_b.record.codex.common_name}\n"
    )
    print(format_battle(result, ansi=sys.stdout.isatty()))
    return 0 if _save_image(result.image_url, args.save_image) else 1


def _handle_options() -> int:
    for category in CATEGORIES:
        print(f"{FACET_LABELS[category]} (--{category}): {', '.join(GUIDED_OPTIONS[category])}")
    return 0


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "options":
        raise SystemExit(_handle_options())
    if args.command not in {"generate", "archive", "battle"}:
        parser.print_help()
        raise SystemExit(1)
    try:
        settings = _resolve_settings(args)
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        raise SystemExit(2)
    _configure_logging(settings.log_level)
    try:
        if args.command == "generate":
            raise SystemExit(_handle_generate(args, settings))
        if args.command == "archive":
            raise SystemExit(_handle_archive(args, settings))
        raise SystemExit(_handle_battle(args, settings))
    except RuntimeError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
