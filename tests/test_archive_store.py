from __future__ import annotations

import sqlite3
from pathlib import Path

from biogenesis_engine.archive.store import ArchiveStore, entry_id_for
from biogenesis_engine.schema import CreatureRecord


def _record(entity_id: str, name: str = "Glass Stalker") -> CreatureRecord:
    return CreatureRecord.model_validate(
        {
            "codex": {
                "scientific_name": "Vitrea velox",
                "common_name": name,
                "biological_description": "A translucent ambush hunter.",
                "ecological_role": "Apex predator of salt flats.",
            },
            "engine_data": {
                "entity_id": entity_id,
                "taxonomy": {"class": "Silicoforma", "diet": "Carnivore"},
                "stats": {"hp": 40, "speed": 90, "intelligence": 55, "stealth": 80},
                "traits": [{"name": "Refraction", "effect": "Near invisible", "biological_basis": "Silica skin"}],
                "weaknesses": ["Blunt force"],
                "visual_generation_prompt": "A glass lizard on a salt flat",
                "behavior_tree": {"idle": "Basks", "combat": "Ambush", "mating": "Light display"},
            },
        }
    )


def test_list_all_orders_newest_first(tmp_path: Path) -> None:
    store = ArchiveStore(path=tmp_path / "archive.sqlite")
    store.save(_record("a"), "data:image/png;base64,AA==", timestamp=100)
    store.save(_record("c"), "data:image/png;base64,AA==", timestamp=300)
    store.save(_record("b"), "data:image/png;base64,AA==", timestamp=200)

    entries = store.list_all()
    assert [entry.timestamp for entry in entries] == [300, 200, 100]
    assert [entry.id for entry in entries] == ["c", "b", "a"]


def test_save_same_id_upserts_latest_content(tmp_path: Path) -> None:
    store = ArchiveStore(path=tmp_path / "archive.sqlite")
    store.save(_record("dup", name="First"), "data:image/png;base64,AA==", timestamp=100)
    store.save(_record("dup", name="Second"), "data:image/png;base64,AQ==", timestamp=200)

    entries = store.list_all()
    assert len(entries) == 1
    assert entries[0].record.codex.common_name == "Second"
    assert entries[0].image_url == "data:image/png;base64,AQ=="
    assert entries[0].timestamp == 200


def test_empty_entity_id_falls_back_to_timestamp(tmp_path: Path) -> None:
    store = ArchiveStore(path=tmp_path / "archive.sqlite")
    entry = store.save(_record("  "), None, timestamp=1700000000123)
    assert entry is not None
    assert entry.id == "1700000000123"
    assert entry_id_for(_record(""), 42) == "42"
    assert store.get("1700000000123") is not None


def test_delete_and_clear_are_idempotent(tmp_path: Path) -> None:
    store = ArchiveStore(path=tmp_path / "archive.sqlite")
    store.save(_record("a"), None, timestamp=1)
    store.save(_record("b"), None, timestamp=2)

    store.delete_one("a")
    store.delete_one("a")
    store.delete_one("missing")
    assert [entry.id for entry in store.list_all()] == ["b"]
    assert store.count() == 1

    store.clear_all()
    store.clear_all()
    assert store.list_all() == []
    assert store.count() == 0


def test_corrupt_database_lists_empty(tmp_path: Path) -> None:
    path = tmp_path / "archive.sqlite"
    path.write_bytes(b"this is not a sqlite database at all" * 64)
    store = ArchiveStore(path=path)

    assert store.list_all() == []
    assert store.get("anything") is None
    assert store.save(_record("a"), None) is None


def test_unreadable_row_is_skipped(tmp_path: Path) -> None:
    path = tmp_path / "archive.sqlite"
    store = ArchiveStore(path=path)
    store.save(_record("good"), None, timestamp=10)
    with sqlite3.connect(path) as conn:
        conn.execute(
            "INSERT INTO creatures (id, timestamp, record_json, image_url) VALUES (?, ?, ?, ?)",
            ("bad", 20, "{not json", None),
        )
    conn.close()

    entries = store.list_all()
    assert [entry.id for entry in entries] == ["good"]


def test_save_failure_does_not_raise(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file where a directory should be", encoding="utf-8")
    store = ArchiveStore(path=blocker / "archive.sqlite")

    assert store.save(_record("a"), None) is None
    assert store.list_all() == []
