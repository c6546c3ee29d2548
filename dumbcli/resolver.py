"""Locate saved commands by id or alias"""

from typing import Optional, Sequence

from dumbcli.errors import NotFound, ValidationError
from dumbcli.models import Command, is_valid_alias


class CommandResolver:
    """Resolve specifiers and enforce alias uniqueness"""

    @staticmethod
    def parse_id(specifier: str) -> Optional[int]:
        """Parse a base-10 id, or None if the specifier is not numeric"""
        text = specifier.strip()
        if not text.isdigit() or not text.isascii():
            return None
        return int(text)

    @staticmethod
    def resolve(specifier: str, records: Sequence[Command]) -> Command:
        """Find the record a specifier refers to

        Args:
            specifier: A numeric id or an alias (case-insensitive)
            records: The records to scan, in order

        Returns:
            The first record matching by id or alias. Each record's id is
            checked before its alias, but an earlier record matching by alias
            still beats a later record matching by id.

        Raises:
            NotFound: if no record matches
        """
        wanted_id = CommandResolver.parse_id(specifier)
        alias = specifier.strip()
        for record in records:
            if wanted_id is not None and record.id == wanted_id:
                return record
            if alias and record.matches_alias(alias):
                return record
        raise NotFound(specifier)

    @staticmethod
    def is_alias_unique(alias: Optional[str], records: Sequence[Command],
                        exclude_id: Optional[int] = None) -> bool:
        """Check that no other record uses ``alias``

        An absent alias never conflicts. ``exclude_id`` skips the record
        being edited.
        """
        if not alias:
            return True
        return not any(
            record.matches_alias(alias)
            for record in records
            if exclude_id is None or record.id != exclude_id
        )

    @staticmethod
    def validate_alias(alias: str) -> str:
        """Return the alias unchanged, or raise ValidationError"""
        if not is_valid_alias(alias):
            raise ValidationError("alias", f"'{alias}' must be a single word without ':'")
        return alias
