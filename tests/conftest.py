import json
from pathlib import Path
from typing import List

import pytest

from dumbcli.config import StoreConfig
from dumbcli.manager import CommandManager
from dumbcli.models import Command
from dumbcli.storage import CommandStorage


@pytest.fixture
def store_config(tmp_path) -> StoreConfig:
    return StoreConfig(config_dir=tmp_path / ".dumbcli")


@pytest.fixture
def storage(store_config) -> CommandStorage:
    store_config.ensure_dir()
    return CommandStorage(store_config, auto_backup=False)


@pytest.fixture
def manager(storage) -> CommandManager:
    return CommandManager(storage)


@pytest.fixture
def records() -> List[Command]:
    return [
        Command(id=1, command="git status", alias="gs", comment="short status"),
        Command(id=2, command="echo {} {}", alias="echo2"),
        Command(id=5, command="docker ps -a", comment="all containers"),
    ]


@pytest.fixture
def seeded(storage, records) -> CommandStorage:
    storage.save(records)
    storage.save_counter(6)
    return storage


@pytest.fixture
def write_json():
    def _write(path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
