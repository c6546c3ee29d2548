import json
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence

from dumbcli.config import StoreConfig
from dumbcli.errors import CorruptStore, DumbCLIError, IOFailure
from dumbcli.models import Command

logger = logging.getLogger(__name__)

DEFAULT_NEXT_ID = 1


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to a sibling temp file, then rename it over ``path``"""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


class CommandStorage:
    """Handle storage and retrieval of saved commands.

    Every operation works on a full snapshot: ``load`` reads the whole file
    and ``save`` rewrites it. There is no locking, so two processes writing
    at once are last-writer-wins.
    """

    def __init__(self, config: StoreConfig, auto_backup: bool = True, max_backups: int = 10):
        self.config = config
        self.storage_path = config.records_path
        self.counter_path = config.counter_path
        self.backup_dir = config.backup_dir
        self.auto_backup = auto_backup
        self.max_backups = max_backups
        self.last_error: Optional[DumbCLIError] = None

    def load(self) -> List[Command]:
        """Load commands from the JSON file.

        Never raises for bad content: a corrupt or unreadable file is
        reported through ``last_error`` and a warning, and yields ``[]``.
        """
        self.last_error = None
        try:
            text = self.storage_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except UnicodeDecodeError:
            self.last_error = CorruptStore(self.storage_path, "not valid UTF-8")
            logger.warning("%s; returning empty command list", self.last_error)
            return []
        except OSError as e:
            self.last_error = IOFailure(self.storage_path, e.strerror or str(e))
            logger.warning("%s; returning empty command list", self.last_error)
            return []

        if not text.strip():
            return []

        try:
            return self._decode(text)
        except CorruptStore as e:
            self.last_error = e
            logger.warning("%s; returning empty command list", e)
            return []

    def _decode(self, text: str) -> List[Command]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptStore(self.storage_path, f"invalid JSON ({e.msg} at line {e.lineno})") from e
        if not isinstance(data, list):
            raise CorruptStore(self.storage_path, "expected a JSON array of commands")

        records: List[Command] = []
        seen_ids = set()
        seen_aliases = set()
        total = len(data)
        for index, entry in enumerate(data):
            try:
                # Entries without ids come from the legacy newest-first layout
                record = Command.from_dict(entry, default_id=total - index)
            except ValueError as e:
                raise CorruptStore(self.storage_path, f"entry {index}: {e}") from e
            if record.id in seen_ids:
                raise CorruptStore(self.storage_path, f"entry {index}: duplicate id {record.id}")
            if record.alias is not None:
                key = record.alias.lower()
                if key in seen_aliases:
                    raise CorruptStore(self.storage_path, f"entry {index}: duplicate alias '{record.alias}'")
                seen_aliases.add(key)
            seen_ids.add(record.id)
            records.append(record)

        return sorted(records, key=lambda r: r.id)

    def save(self, records: Sequence[Command]) -> None:
        """Persist the full record set sorted by id"""
        self.config.ensure_dir()
        data = [record.to_dict() for record in sorted(records, key=lambda r: r.id)]

        if isinstance(self.last_error, CorruptStore):
            self._preserve_corrupted()
        elif self.auto_backup:
            self.create_backup()

        try:
            atomic_write_json(self.storage_path, data)
        except OSError as e:
            raise IOFailure(self.storage_path, e.strerror or str(e)) from e
        self.last_error = None

    def _preserve_corrupted(self) -> None:
        """Keep a copy of a corrupt file before it is overwritten"""
        corrupted_path = self.storage_path.with_suffix(".corrupted")
        try:
            shutil.copy2(self.storage_path, corrupted_path)
            logger.warning("Saved unreadable %s as %s", self.storage_path.name, corrupted_path.name)
        except OSError as e:
            raise IOFailure(corrupted_path, e.strerror or str(e)) from e

    def load_counter(self) -> int:
        """Load the next id to assign, defaulting to 1"""
        try:
            text = self.counter_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return DEFAULT_NEXT_ID
        except UnicodeDecodeError:
            logger.warning("Could not decode %s; resetting counter", self.counter_path)
            return DEFAULT_NEXT_ID
        except OSError as e:
            logger.warning("Could not read %s: %s", self.counter_path, e)
            return DEFAULT_NEXT_ID

        try:
            data = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Could not parse %s; resetting counter", self.counter_path)
            return DEFAULT_NEXT_ID
        next_id = data.get("nextId") if isinstance(data, dict) else None
        if isinstance(next_id, bool) or not isinstance(next_id, int) or next_id < 1:
            if text.strip():
                logger.warning("Invalid nextId in %s; resetting counter", self.counter_path)
            return DEFAULT_NEXT_ID
        return next_id

    def save_counter(self, next_id: int) -> None:
        self.config.ensure_dir()
        try:
            atomic_write_json(self.counter_path, {"nextId": next_id})
        except OSError as e:
            raise IOFailure(self.counter_path, e.strerror or str(e)) from e

    def next_id(self, records: Sequence[Command]) -> int:
        """Return the id the next created command should get.

        The counter is moved past the highest id in ``records`` so a stale
        or lost counter file can never produce a duplicate. Callers persist
        the advanced counter with ``save_counter`` once their records are
        saved.
        """
        next_id = self.load_counter()
        highest = max((r.id for r in records), default=0)
        if next_id <= highest:
            logger.debug("Counter %d behind highest id %d; advancing", next_id, highest)
            next_id = highest + 1
        return next_id

    def dump_raw(self) -> str:
        """Return the records file exactly as stored"""
        try:
            return self.storage_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return "[]"
        except OSError as e:
            raise IOFailure(self.storage_path, e.strerror or str(e)) from e

    def create_backup(self) -> Optional[Path]:
        """Create timestamped backup of current commands"""
        if not self.storage_path.exists():
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = self.backup_dir / f"commands_{timestamp}.json"

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.storage_path, backup_path)
        except OSError as e:
            logger.warning("Backup failed: %s", e)
            return None
        self.cleanup_old_backups(keep=self.max_backups)
        logger.debug("Backed up commands to %s", backup_path)
        return backup_path

    def cleanup_old_backups(self, keep: int = 10) -> None:
        """Remove old backups, keeping only the most recent ones"""
        backups = sorted(self.backup_dir.glob("commands_*.json"))
        keep = max(keep, 0)
        if len(backups) > keep:
            for backup in backups[:len(backups) - keep]:
                backup.unlink()

    def restore_latest_backup(self) -> Optional[Path]:
        """Restore from the most recent backup, returning its path"""
        backups = sorted(self.backup_dir.glob("commands_*.json"))
        if not backups:
            return None
        latest_backup = backups[-1]
        try:
            data = json.loads(latest_backup.read_text(encoding="utf-8"))
            atomic_write_json(self.storage_path, data)
        except (OSError, json.JSONDecodeError) as e:
            raise IOFailure(latest_backup, str(e)) from e
        return latest_backup
