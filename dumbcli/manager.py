"""Create, edit, delete and search saved commands"""

import logging
import re
from typing import Callable, List, Optional, Tuple, Union

from rapidfuzz import fuzz

from dumbcli.errors import Cancelled, NoOp, ValidationError
from dumbcli.models import Command, CommandFields, EditAction, EditFields, FieldEdit
from dumbcli.resolver import CommandResolver
from dumbcli.storage import CommandStorage

logger = logging.getLogger(__name__)

# "alias: command ## comment"; the alias prefix must be followed by whitespace
POWER_ALIAS_PATTERN = re.compile(r"^([^\s:]+):\s+(.*)$", re.DOTALL)
POWER_COMMENT_SEPARATOR = " ## "

EditSource = Union[Optional[EditFields], Callable[[Command], Optional[EditFields]]]


def parse_power_syntax(text: str) -> CommandFields:
    """Split ``[alias: ]command[ ## comment]`` into fields"""
    body = text.strip()
    alias = None
    match = POWER_ALIAS_PATTERN.match(body)
    if match:
        alias, body = match.group(1), match.group(2)

    comment = None
    head, sep, tail = body.rpartition(POWER_COMMENT_SEPARATOR)
    if sep:
        body, comment = head, tail

    return CommandFields(command=body, alias=alias, comment=comment)


class CommandManager:
    """Apply validated changes to the command store"""

    def __init__(self, storage: CommandStorage, fuzzy_threshold: int = 70):
        self.storage = storage
        self.fuzzy_threshold = fuzzy_threshold

    def list_all(self) -> List[Command]:
        return self.storage.load()

    def resolve(self, specifier: str) -> Command:
        return CommandResolver.resolve(specifier, self.storage.load())

    def find(self, query: str, fuzzy: bool = False) -> List[Command]:
        """Search commands, comments and aliases (case-insensitive)"""
        needle = query.strip().lower()
        if not needle:
            return []

        scored: List[Tuple[float, Command]] = []
        for record in self.storage.load():
            haystacks = [record.command, record.comment or "", record.alias or ""]
            if any(needle in h.lower() for h in haystacks):
                scored.append((100.0, record))
            elif fuzzy:
                score = max(fuzz.partial_ratio(needle, h.lower()) for h in haystacks if h)
                if score >= self.fuzzy_threshold:
                    scored.append((score, record))

        if fuzzy:
            # stable sort keeps id order among equal scores
            scored.sort(key=lambda pair: pair[0], reverse=True)
        return [record for _, record in scored]

    def create(self, fields: Optional[CommandFields]) -> Command:
        """Validate and store a new command.

        ``fields`` is None when the user aborted input.
        """
        if fields is None:
            raise Cancelled("Add command canceled")

        command = (fields.command or "").strip()
        if not command:
            raise ValidationError("command", "a command is required")

        records = self.storage.load()

        alias = (fields.alias or "").strip() or None
        if alias is not None:
            CommandResolver.validate_alias(alias)
            if not CommandResolver.is_alias_unique(alias, records):
                raise ValidationError("alias", f"'{alias}' is already in use")

        comment = (fields.comment or "").strip() or None

        record = Command(
            id=self.storage.next_id(records),
            command=command,
            alias=alias,
            comment=comment,
        )
        records.append(record)
        self.storage.save(records)
        self.storage.save_counter(record.id + 1)
        logger.debug("Created command %s", record)
        return record

    def create_from_power_syntax(self, text: str) -> Command:
        return self.create(parse_power_syntax(text))

    def edit(self, specifier: str, changes: EditSource) -> Command:
        """Apply an edit to the record ``specifier`` refers to.

        ``changes`` may be a callable that receives the resolved record and
        collects the edit interactively; it returns None if the user aborts.
        Raises NoOp when nothing would change; nothing is written unless
        every field validates.
        """
        records = self.storage.load()
        record = CommandResolver.resolve(specifier, records)

        if callable(changes):
            changes = changes(record)
        if changes is None:
            raise Cancelled("Edit canceled")

        new_command = self._edited_command(record, changes.command)
        new_alias = self._edited_alias(record, changes.alias, records)
        new_comment = self._edited_text(record.comment, changes.comment)

        if (new_command, new_alias, new_comment) == (record.command, record.alias, record.comment):
            raise NoOp(f"No changes to command #{record.id}")

        record.command = new_command
        record.alias = new_alias
        record.comment = new_comment
        self.storage.save(records)
        logger.debug("Edited command %s", record)
        return record

    @staticmethod
    def _edited_text(current: Optional[str], change: FieldEdit) -> Optional[str]:
        if change.action is EditAction.CLEAR:
            return None
        if change.action is EditAction.SET and change.value and change.value.strip():
            return change.value.strip()
        return current

    def _edited_command(self, record: Command, change: FieldEdit) -> str:
        if change.action is EditAction.CLEAR:
            raise ValidationError("command", "the command cannot be cleared")
        return self._edited_text(record.command, change)

    def _edited_alias(self, record: Command, change: FieldEdit, records: List[Command]) -> Optional[str]:
        alias = self._edited_text(record.alias, change)
        if alias is None or alias == record.alias:
            return alias
        CommandResolver.validate_alias(alias)
        if not CommandResolver.is_alias_unique(alias, records, exclude_id=record.id):
            raise ValidationError("alias", f"'{alias}' is already in use")
        return alias

    def delete(self, specifier: str, confirm: Callable[[Command], bool]) -> Command:
        """Remove a record once ``confirm`` approves it"""
        records = self.storage.load()
        record = CommandResolver.resolve(specifier, records)

        if not confirm(record):
            raise Cancelled("Deletion canceled")

        remaining = [r for r in records if r.id != record.id]
        self.storage.save(remaining)
        logger.debug("Deleted command %s", record)
        return record
