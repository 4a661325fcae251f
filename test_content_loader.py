"""
Tests for the JSON content loader
"""
import json
import os
from datetime import datetime

import pytest

from modguide.content.loader import ContentLoader
from modguide.errors import ContentStoreError
from modguide.models.content import ContentType, envelope


def test_bundled_corpus_counts(bundled_loader):
    stats = bundled_loader.get_content_stats()
    assert stats["guide_count"] == 5
    assert stats["penalty_count"] == 7
    assert stats["command_count"] == 5
    assert stats["procedure_count"] == 2
    assert stats["template_count"] == 3
    assert stats["total_count"] == 22


def test_collections_sorted_by_order(bundled_loader):
    for units in (
        bundled_loader.load_guides(),
        bundled_loader.load_penalties(),
        bundled_loader.load_commands(),
        bundled_loader.load_procedures(),
    ):
        orders = [u.order for u in units]
        assert orders == sorted(orders)


def test_equal_order_keeps_file_order(tmp_path, index_writer):
    index_writer(tmp_path, "commands", [
        {"id": "cmd-b", "command": "/b", "description": "b", "order": 2},
        {"id": "cmd-a1", "command": "/a1", "description": "a1", "order": 1},
        {"id": "cmd-a2", "command": "/a2", "description": "a2", "order": 1},
    ])
    loader = ContentLoader(str(tmp_path))
    assert [c.id for c in loader.load_commands()] == ["cmd-a1", "cmd-a2", "cmd-b"]


def test_load_all_order(bundled_loader):
    types = [u.type for u in bundled_loader.load_all()]
    first_index = {t: types.index(t) for t in ContentType}
    assert first_index[ContentType.GUIDE] < first_index[ContentType.PENALTY]
    assert first_index[ContentType.PENALTY] < first_index[ContentType.COMMAND]
    assert first_index[ContentType.COMMAND] < first_index[ContentType.PROCEDURE]


def test_lookups_are_case_insensitive(bundled_loader):
    assert bundled_loader.get_penalty_by_code("adk-001").id == "penalty-004"
    assert bundled_loader.get_penalty_by_code("ADK-001").id == "penalty-004"
    assert bundled_loader.get_guide_by_slug("GIRIS").id == "guide-001"
    assert bundled_loader.get_procedure_by_slug("itiraz").id == "proc-002"
    assert bundled_loader.get_guide_by_id("GUIDE-002").slug == "yazili-kanal-kurallari"


def test_command_lookup_with_or_without_slash(bundled_loader):
    assert bundled_loader.get_command_by_name("/mute").id == "cmd-001"
    assert bundled_loader.get_command_by_name("mute").id == "cmd-001"
    assert bundled_loader.get_command_by_id("cmd-002").command == "/ban"


def test_lookup_miss_returns_none(bundled_loader):
    assert bundled_loader.get_penalty_by_id("penalty-999") is None
    assert bundled_loader.get_penalty_by_code("") is None
    assert bundled_loader.get_command_by_name("   ") is None
    assert bundled_loader.get_content_by_id("nope") is None


def test_get_content_by_id_spans_types(bundled_loader):
    assert bundled_loader.get_content_by_id("cmd-007").type is ContentType.COMMAND
    assert bundled_loader.get_content_by_id("proc-001").type is ContentType.PROCEDURE
    assert bundled_loader.get_content_by_id("penalty-007").type is ContentType.PENALTY


def test_penalties_by_category(bundled_loader):
    blacklist = bundled_loader.load_penalties_by_category("BLACKLIST")
    assert [p.code for p in blacklist] == ["BL-001"]
    assert [p.code for p in bundled_loader.load_penalties_by_category("YAZILI")][:1] == ["HKR-001"]


def test_category_filters_with_missing_category(bundled_loader):
    assert bundled_loader.load_penalties_by_category(None) == []
    assert bundled_loader.load_penalties_by_category("  ") == []
    assert bundled_loader.get_templates_by_category(None) == []


def test_templates(bundled_loader):
    templates = bundled_loader.load_templates()
    assert [t.id for t in templates] == ["template-001", "template-002", "template-003"]

    mute = bundled_loader.get_template_by_id("template-001")
    assert isinstance(mute.created_at, datetime)
    assert mute.created_at.tzinfo is not None
    assert mute.editable_by == ("admin", "owner")
    assert [t.id for t in bundled_loader.get_templates_by_category("ban")] == ["template-002"]


def test_missing_index_files_yield_empty_lists(tmp_path):
    loader = ContentLoader(str(tmp_path))
    assert loader.load_all() == []
    assert loader.load_templates() == []
    assert loader.get_content_stats()["total_count"] == 0


def test_malformed_index_raises(tmp_path):
    os.makedirs(tmp_path / "guide")
    (tmp_path / "guide" / "index.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ContentStoreError):
        ContentLoader(str(tmp_path)).load_guides()


def test_entry_without_id_raises(tmp_path, index_writer):
    index_writer(tmp_path, "penalties", [{"code": "X-1", "name": "x"}])
    with pytest.raises(ContentStoreError):
        ContentLoader(str(tmp_path)).load_penalties()


def test_cache_is_only_invalidated_explicitly(tmp_path, index_writer):
    index_writer(tmp_path, "commands", [{"id": "cmd-1", "command": "/a", "description": "a"}])
    loader = ContentLoader(str(tmp_path))
    assert len(loader.load_commands()) == 1

    index_writer(tmp_path, "commands", [
        {"id": "cmd-1", "command": "/a", "description": "a"},
        {"id": "cmd-2", "command": "/b", "description": "b"},
    ])
    assert len(loader.load_commands()) == 1

    loader.clear_cache()
    assert len(loader.load_commands()) == 2


def test_envelope_fields(bundled_loader):
    penalty = bundled_loader.get_penalty_by_id("penalty-004")
    item = envelope(penalty)
    assert item.title == "ADK-001 - ADK İhlali"
    assert item.href == "/penalties/penalty-004"
    assert "7 gün" in item.body

    command = envelope(bundled_loader.get_command_by_id("cmd-001"))
    assert command.category == "komut"
    assert command.href == "/commands/cmd-001"


def test_bundled_index_files_are_valid_json():
    from modguide import config

    for folder in ("guide", "penalties", "commands", "procedures", "templates"):
        with open(os.path.join(config.CONTENT_DIR, folder, "index.json"), encoding="utf-8") as f:
            assert isinstance(json.load(f), dict)
