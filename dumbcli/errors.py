"""Error conditions raised by the dumbcli core"""

from pathlib import Path
from typing import List, Optional


class DumbCLIError(Exception):
    """Base class for every recoverable dumbcli error"""


class NotFound(DumbCLIError):
    def __init__(self, specifier: str):
        self.specifier = specifier
        super().__init__(f"No command matches '{specifier}'")


class ValidationError(DumbCLIError):
    """A field value was rejected"""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Invalid {field}: {message}")


class Cancelled(DumbCLIError):
    def __init__(self, message: str = "Operation canceled"):
        super().__init__(message)


class NoOp(DumbCLIError):
    def __init__(self, message: str = "No changes detected"):
        super().__init__(message)


class CorruptStore(DumbCLIError):
    """Persisted JSON could not be decoded into records"""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not parse {path}: {reason}")


class IOFailure(DumbCLIError):
    def __init__(self, path: Optional[Path], reason: str):
        self.path = path
        self.reason = reason
        where = f" {path}" if path else ""
        super().__init__(f"I/O error{where}: {reason}")


class InsufficientArguments(DumbCLIError):
    def __init__(self, required: int, provided: int):
        self.required = required
        self.provided = provided
        super().__init__(
            f"Command needs {required} argument(s) for its placeholders, got {provided}"
        )


class CommandFailed(DumbCLIError):
    """The executed command itself exited non-zero"""

    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        super().__init__(f"Command exited with status {exit_code}")


class InvalidPath(DumbCLIError):
    def __init__(self, path: Path, message: str = "not an existing directory"):
        self.path = path
        super().__init__(f"{path}: {message}")


class NoValidRecords(DumbCLIError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"No valid commands found in {path}")


class ConfigDirError(DumbCLIError):
    """The configuration directory could not be created"""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Could not create configuration directory at {path}: {reason}")


class UnusedArguments(UserWarning):
    """Runtime arguments that had no placeholder to fill"""

    def __init__(self, args: List[str]):
        self.args = list(args)
        super().__init__(f"Ignored unused argument(s): {' '.join(self.args)}")
