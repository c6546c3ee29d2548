import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional

import yaml

from dumbcli.errors import Cancelled, CorruptStore, InvalidPath, IOFailure, NoValidRecords
from dumbcli.models import Command, is_valid_alias
from dumbcli.storage import CommandStorage

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "dumbcli-export"
YAML_SUFFIXES = (".yaml", ".yml")


@dataclass
class ImportResult:
    imported: int
    invalid: int
    append: bool
    dropped_aliases: List[str] = field(default_factory=list)


@dataclass
class _ImportEntry:
    command: str
    alias: Optional[str]
    comment: Optional[str]
    # Alias value that was present but not text, e.g. a number
    bad_alias: Optional[str] = None


class CommandPorter:
    """Handle import and export of saved commands"""

    def __init__(self, storage: CommandStorage):
        self.storage = storage

    def export_to_list(self, records: Optional[List[Command]] = None) -> List[dict]:
        if records is None:
            records = self.storage.load()
        return [record.to_dict() for record in records]

    def export(self, target_dir: Path, format: str = "json") -> Path:
        """Write every command to a new timestamped file in ``target_dir``"""
        if not target_dir.is_dir():
            raise InvalidPath(target_dir)

        data = self.export_to_list()
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        suffix = ".yaml" if format == "yaml" else ".json"
        filepath = target_dir / f"{EXPORT_PREFIX}-{timestamp}{suffix}"

        try:
            with open(filepath, "w", encoding="utf-8") as f:
                if format == "yaml":
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
                else:
                    json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise IOFailure(filepath, e.strerror or str(e)) from e

        logger.debug("Exported %d commands to %s", len(data), filepath)
        return filepath

    def _read_entries(self, filepath: Path) -> List[Any]:
        if not filepath.is_file():
            raise InvalidPath(filepath, "file not found")
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                if filepath.suffix.lower() in YAML_SUFFIXES:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except UnicodeDecodeError as e:
            raise CorruptStore(filepath, "not valid UTF-8") from e
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise CorruptStore(filepath, str(e)) from e
        except OSError as e:
            raise IOFailure(filepath, e.strerror or str(e)) from e

        if not isinstance(data, list):
            raise CorruptStore(filepath, "expected an array of commands")
        return data

    @staticmethod
    def _optional_text(value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _non_text(value: Any) -> Optional[str]:
        # false and null both mean "no value" on disk
        if value is None or value is False or isinstance(value, str):
            return None
        return str(value)

    def _valid_entries(self, data: List[Any]) -> List[_ImportEntry]:
        entries = []
        for item in data:
            if not isinstance(item, dict):
                continue
            command = item.get("command")
            if not isinstance(command, str) or not command.strip():
                continue
            raw_alias = item.get("alias")
            entries.append(_ImportEntry(
                command=command.strip(),
                alias=self._optional_text(raw_alias),
                comment=self._optional_text(item.get("comment")),
                bad_alias=self._non_text(raw_alias),
            ))
        return entries

    def import_file(self, filepath: Path, append: bool = True,
                    confirm_replace: Optional[Callable[[], bool]] = None) -> ImportResult:
        """Import commands from a JSON (or YAML) array.

        Append keeps existing commands and gives imported ones fresh ids.
        Replace discards the existing set and renumbers from 1, and only
        runs when ``confirm_replace`` approves.
        """
        data = self._read_entries(filepath)
        entries = self._valid_entries(data)
        invalid = len(data) - len(entries)
        if not entries:
            raise NoValidRecords(filepath)

        if append:
            records = self.storage.load()
            next_id = self.storage.next_id(records)
        else:
            if confirm_replace is None or not confirm_replace():
                raise Cancelled("Import canceled")
            records = []
            next_id = 1

        taken = {r.alias.lower() for r in records if r.alias}
        dropped: List[str] = []
        for entry in entries:
            alias = entry.alias
            if entry.bad_alias is not None:
                logger.warning("Dropped alias '%s' from imported command: %s", entry.bad_alias, entry.command)
                dropped.append(entry.bad_alias)
            elif alias is not None:
                if not is_valid_alias(alias) or alias.lower() in taken:
                    logger.warning("Dropped alias '%s' from imported command: %s", alias, entry.command)
                    dropped.append(alias)
                    alias = None
                else:
                    taken.add(alias.lower())
            records.append(Command(id=next_id, command=entry.command, alias=alias, comment=entry.comment))
            next_id += 1

        self.storage.save(records)
        self.storage.save_counter(next_id)
        return ImportResult(imported=len(entries), invalid=invalid, append=append, dropped_aliases=dropped)
