"""Data models for saved commands"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

PLACEHOLDER = "{}"

# Aliases are single tokens; ':' is reserved for the power syntax
ALIAS_INVALID_CHARS = re.compile(r"[\s:]")


def is_valid_alias(alias: str) -> bool:
    """Check alias syntax: non-empty, no whitespace, no colon"""
    return bool(alias) and not ALIAS_INVALID_CHARS.search(alias)


def _optional_text(data: dict, key: str) -> Optional[str]:
    """Decode the on-disk 'false means absent' encoding"""
    value = data.get(key, False)
    if value is False or value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string or false")
    value = value.strip()
    return value or None


@dataclass
class Command:
    """A saved shell command"""
    id: int
    command: str
    alias: Optional[str] = None
    comment: Optional[str] = None

    @property
    def placeholder_count(self) -> int:
        return self.command.count(PLACEHOLDER)

    def matches_alias(self, text: str) -> bool:
        return self.alias is not None and self.alias.lower() == text.lower()

    def to_dict(self) -> dict:
        """Convert command to dictionary for storage"""
        return {
            "id": self.id,
            "alias": self.alias if self.alias else False,
            "command": self.command,
            "comment": self.comment if self.comment else False,
        }

    @classmethod
    def from_dict(cls, data: Any, default_id: Optional[int] = None) -> "Command":
        """Create command from a stored dictionary.

        Raises ValueError describing the first structural defect found.
        ``default_id`` numbers legacy entries that predate ids.
        """
        if not isinstance(data, dict):
            raise ValueError("entry is not an object")

        if "id" in data:
            record_id = data["id"]
            # bool is an int subclass; true/false are not ids
            if isinstance(record_id, bool) or not isinstance(record_id, int) or record_id < 1:
                raise ValueError("'id' must be a positive integer")
        elif default_id is not None:
            record_id = default_id
        else:
            raise ValueError("missing 'id'")

        command = data.get("command")
        if not isinstance(command, str) or not command.strip():
            raise ValueError("'command' must be a non-empty string")

        alias = _optional_text(data, "alias")
        if alias is not None and not is_valid_alias(alias):
            raise ValueError(f"alias '{alias}' contains whitespace or ':'")

        return cls(
            id=record_id,
            command=command.strip(),
            alias=alias,
            comment=_optional_text(data, "comment"),
        )

    def __str__(self) -> str:
        """String representation for display"""
        label = f"#{self.id}"
        if self.alias:
            label += f" ({self.alias})"
        return f"{label} {self.command}"


@dataclass
class CommandFields:
    """User-supplied values for a new command"""
    command: str
    alias: Optional[str] = None
    comment: Optional[str] = None


class EditAction(Enum):
    KEEP = "keep"
    SET = "set"
    CLEAR = "clear"


@dataclass(frozen=True)
class FieldEdit:
    """One field's edit instruction"""
    action: EditAction = EditAction.KEEP
    value: Optional[str] = None

    @classmethod
    def keep(cls) -> "FieldEdit":
        return cls(EditAction.KEEP)

    @classmethod
    def set(cls, value: str) -> "FieldEdit":
        return cls(EditAction.SET, value)

    @classmethod
    def clear(cls) -> "FieldEdit":
        return cls(EditAction.CLEAR)

    @classmethod
    def from_input(cls, text: Optional[str], clear: bool = False) -> "FieldEdit":
        """Blank input keeps the current value; an explicit flag clears it"""
        if clear:
            return cls.clear()
        if text is None or not text.strip():
            return cls.keep()
        return cls.set(text)


@dataclass
class EditFields:
    command: FieldEdit = field(default_factory=FieldEdit.keep)
    alias: FieldEdit = field(default_factory=FieldEdit.keep)
    comment: FieldEdit = field(default_factory=FieldEdit.keep)
