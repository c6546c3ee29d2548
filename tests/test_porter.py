import json
from unittest.mock import Mock

import pytest
import yaml
from freezegun import freeze_time

from dumbcli.errors import Cancelled, CorruptStore, InvalidPath, NoValidRecords
from dumbcli.models import Command
from dumbcli.porter import CommandPorter


@pytest.fixture
def porter(seeded) -> CommandPorter:
    return CommandPorter(seeded)


def _triples(records):
    return sorted((r.command, r.alias, r.comment) for r in records)


def test_export_to_list(porter):
    assert porter.export_to_list()[0] == {"id": 1, "alias": "gs", "command": "git status", "comment": "short status"}


@freeze_time("2026-10-18 09:30:00")
def test_export__json(porter, tmp_path):
    path = porter.export(tmp_path)

    assert path == tmp_path / "dumbcli-export-20261018_093000.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert [entry["id"] for entry in data] == [1, 2, 5]


@freeze_time("2026-10-18 09:30:00")
def test_export__yaml(porter, tmp_path):
    path = porter.export(tmp_path, format="yaml")

    assert path.name == "dumbcli-export-20261018_093000.yaml"
    assert yaml.safe_load(path.read_text(encoding="utf-8"))[1]["alias"] == "echo2"


def test_export__target_not_a_directory(porter, tmp_path):
    with pytest.raises(InvalidPath):
        porter.export(tmp_path / "missing")

    a_file = tmp_path / "file.txt"
    a_file.write_text("x")
    with pytest.raises(InvalidPath):
        porter.export(a_file)


def test_round_trip_replace(porter, tmp_path, records):
    path = porter.export(tmp_path)

    result = porter.import_file(path, append=False, confirm_replace=lambda: True)

    assert result.imported == 3
    assert _triples(porter.storage.load()) == _triples(records)
    assert [r.id for r in porter.storage.load()] == [1, 2, 3]
    assert porter.storage.load_counter() == 4


def test_import_append__alias_collision(porter, tmp_path, write_json):
    source = write_json(tmp_path / "in.json", [
        {"command": "git status -s", "alias": "GS", "comment": "dup alias"},
        {"command": "make test", "alias": "mt"},
        {"command": "make lint", "alias": "mt"},
        {"command": "make fmt", "alias": "bad alias"},
    ])

    result = porter.import_file(source, append=True)

    loaded = porter.storage.load()
    assert len(loaded) == 3 + 4
    assert result.imported == 4
    assert result.dropped_aliases == ["GS", "mt", "bad alias"]
    by_command = {r.command: r for r in loaded}
    assert by_command["git status -s"].alias is None
    assert by_command["make test"].alias == "mt"
    assert by_command["make lint"].alias is None
    assert porter.storage.load_counter() == 10


def test_import_append__ids_continue_past_existing(porter, tmp_path, write_json):
    porter.storage.save_counter(1)
    source = write_json(tmp_path / "in.json", [{"id": 1, "command": "echo new"}])

    porter.import_file(source)

    assert porter.storage.load()[-1] == Command(id=6, command="echo new")
    assert porter.storage.load_counter() == 7


def test_import__invalid_entries_skipped(porter, tmp_path, write_json):
    source = write_json(tmp_path / "in.json", [
        {"command": "ok"},
        {"command": "   "},
        {"comment": "no command"},
        "not an object",
    ])

    result = porter.import_file(source)

    assert (result.imported, result.invalid) == (1, 3)


def test_import__no_valid_records(porter, tmp_path, write_json):
    before = porter.storage.storage_path.read_bytes()
    source = write_json(tmp_path / "in.json", [{"comment": "nothing"}])

    with pytest.raises(NoValidRecords):
        porter.import_file(source)

    assert porter.storage.storage_path.read_bytes() == before


def test_import__not_an_array(porter, tmp_path, write_json):
    source = write_json(tmp_path / "in.json", {"aliases": []})

    with pytest.raises(CorruptStore):
        porter.import_file(source)


def test_import__invalid_utf8(porter, tmp_path):
    source = tmp_path / "in.json"
    source.write_bytes(b'[{"command": "ls \xff"}]')

    with pytest.raises(CorruptStore, match="not valid UTF-8"):
        porter.import_file(source)


def test_import__missing_file(porter, tmp_path):
    with pytest.raises(InvalidPath):
        porter.import_file(tmp_path / "nope.json")


def test_import_replace__declined(porter, tmp_path, write_json, records):
    source = write_json(tmp_path / "in.json", [{"command": "new"}])

    with pytest.raises(Cancelled):
        porter.import_file(source, append=False, confirm_replace=lambda: False)

    assert porter.storage.load() == records


def test_import_replace__batch_alias_collision(porter, tmp_path, write_json):
    # "gs" exists in the old set, which replace discards
    source = write_json(tmp_path / "in.json", [
        {"command": "a", "alias": "gs"},
        {"command": "b", "alias": "GS"},
    ])
    confirm = Mock(return_value=True)

    result = porter.import_file(source, append=False, confirm_replace=confirm)

    confirm.assert_called_once()
    assert result.dropped_aliases == ["GS"]
    assert porter.storage.load() == [Command(id=1, command="a", alias="gs"), Command(id=2, command="b")]


def test_import__yaml(porter, tmp_path):
    source = tmp_path / "in.yaml"
    source.write_text("- command: htop\n  alias: top\n", encoding="utf-8")

    porter.import_file(source)

    assert porter.storage.load()[-1] == Command(id=6, command="htop", alias="top")


def test_import__non_text_alias_reported(porter, tmp_path, write_json):
    source = write_json(tmp_path / "in.json", [
        {"command": "make test", "alias": 123},
        {"command": "make lint", "alias": False},
    ])

    result = porter.import_file(source)

    assert result.dropped_aliases == ["123"]
    assert [r.alias for r in porter.storage.load()[-2:]] == [None, None]
