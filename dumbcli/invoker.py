"""Placeholder substitution and execution of saved commands"""

import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from dumbcli.errors import Cancelled, CommandFailed, InsufficientArguments, IOFailure, UnusedArguments
from dumbcli.models import PLACEHOLDER, Command
from dumbcli.resolver import CommandResolver
from dumbcli.storage import CommandStorage

logger = logging.getLogger(__name__)

# "~" alone or "~/..." at the very start of the command
LEADING_TILDE_PATTERN = re.compile(r"^~(?=$|/)")


@dataclass
class Invocation:
    """A command line ready to hand to the shell"""
    command: str
    unused_args: List[str] = field(default_factory=list)

    @property
    def warning(self) -> Optional[UnusedArguments]:
        if not self.unused_args:
            return None
        return UnusedArguments(self.unused_args)


@dataclass
class RunResult:
    record: Command
    invocation: Invocation
    exit_code: int


def expand_home(command: str, home: Optional[Path] = None) -> str:
    home_dir = str(home if home is not None else Path.home())
    return LEADING_TILDE_PATTERN.sub(lambda _: home_dir, command)


def substitute(template: str, args: Sequence[str]) -> str:
    """Fill each ``{}`` left to right with the next argument"""
    pieces = template.split(PLACEHOLDER)
    out = [pieces[0]]
    for arg, piece in zip(args, pieces[1:]):
        out.append(arg)
        out.append(piece)
    return "".join(out)


def shell_runner(command: str) -> int:
    """Run ``command`` through the user's shell with inherited stdio"""
    completed = subprocess.run(command, shell=True, executable=os.environ.get("SHELL") or None)
    return completed.returncode


class Invoker:
    """Turn a stored command plus runtime arguments into a process"""

    def __init__(self, storage: CommandStorage, runner: Callable[[str], int] = shell_runner,
                 home: Optional[Path] = None):
        self.storage = storage
        self.runner = runner
        self.home = home

    def prepare(self, record: Command, args: Sequence[str]) -> Invocation:
        """Build the final command string for ``record``

        Raises:
            InsufficientArguments: if fewer args than placeholders were given
        """
        args = list(args)
        required = record.placeholder_count
        if len(args) < required:
            raise InsufficientArguments(required, len(args))

        template = expand_home(record.command, self.home)
        final = substitute(template, args[:required]) if required else template
        return Invocation(command=final, unused_args=args[required:])

    def execute(self, invocation: Invocation) -> int:
        """Run a prepared invocation; non-zero exit raises CommandFailed"""
        logger.debug("Executing: %s", invocation.command)
        try:
            exit_code = self.runner(invocation.command)
        except OSError as e:
            raise IOFailure(None, f"could not start command: {e}") from e
        if exit_code != 0:
            raise CommandFailed(exit_code)
        return exit_code

    def run(self, specifier: str, args: Sequence[str],
            confirm: Callable[[Invocation], bool]) -> RunResult:
        record = CommandResolver.resolve(specifier, self.storage.load())
        invocation = self.prepare(record, args)
        if not confirm(invocation):
            raise Cancelled("Execution canceled")
        exit_code = self.execute(invocation)
        return RunResult(record=record, invocation=invocation, exit_code=exit_code)
