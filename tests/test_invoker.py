"""Tests for placeholder substitution and execution"""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from dumbcli.errors import Cancelled, CommandFailed, InsufficientArguments, IOFailure, NotFound, UnusedArguments
from dumbcli.invoker import Invocation, Invoker, expand_home, shell_runner, substitute
from dumbcli.models import Command

HOME = Path("/home/tester")


@pytest.fixture
def invoker(seeded):
    return Invoker(seeded, runner=Mock(return_value=0), home=HOME)


class TestPrepare:
    def test_substitutes_and_reports_extra_args(self, invoker):
        invocation = invoker.prepare(Command(id=1, command="echo {} {}"), ["a", "b", "c"])

        assert invocation.command == "echo a b"
        assert invocation.unused_args == ["c"]
        assert isinstance(invocation.warning, UnusedArguments)
        assert "c" in str(invocation.warning)

    def test_insufficient_arguments(self, invoker):
        with pytest.raises(InsufficientArguments) as exc_info:
            invoker.prepare(Command(id=1, command="echo {} {}"), ["a"])

        assert (exc_info.value.required, exc_info.value.provided) == (2, 1)

    def test_no_placeholders_with_args(self, invoker):
        invocation = invoker.prepare(Command(id=1, command="uptime"), ["x", "y"])

        assert invocation.command == "uptime"
        assert invocation.unused_args == ["x", "y"]

    def test_no_placeholders_no_args(self, invoker):
        invocation = invoker.prepare(Command(id=1, command="uptime"), [])

        assert invocation == Invocation(command="uptime")
        assert invocation.warning is None

    def test_arguments_are_inserted_literally(self, invoker):
        invocation = invoker.prepare(Command(id=1, command="echo {} {}"), ["{}", "~/x"])

        assert invocation.command == "echo {} ~/x"

    def test_leading_tilde_expanded(self, invoker):
        invocation = invoker.prepare(Command(id=1, command="~/bin/deploy.sh {}"), ["prod"])

        assert invocation.command == "/home/tester/bin/deploy.sh prod"


class TestHelpers:
    @pytest.mark.parametrize("command, expected", [
        ("~", "/home/tester"),
        ("~/scripts/run", "/home/tester/scripts/run"),
        ("~user/run", "~user/run"),
        ("ls ~/x", "ls ~/x"),
        ("echo ~", "echo ~"),
    ])
    def test_expand_home(self, command, expected):
        assert expand_home(command, HOME) == expected

    def test_substitute_left_to_right(self):
        assert substitute("cp {} {}.bak", ["a.txt", "a.txt"]) == "cp a.txt a.txt.bak"

    @patch("dumbcli.invoker.subprocess")
    def test_shell_runner_uses_user_shell(self, mock_subprocess, monkeypatch):
        monkeypatch.setenv("SHELL", "/bin/zsh")
        mock_subprocess.run.return_value.returncode = 3

        assert shell_runner("false") == 3
        mock_subprocess.run.assert_called_once_with("false", shell=True, executable="/bin/zsh")


class TestExecute:
    def test_success(self, invoker):
        assert invoker.execute(Invocation(command="true")) == 0
        invoker.runner.assert_called_once_with("true")

    def test_non_zero_exit(self, invoker):
        invoker.runner.return_value = 2

        with pytest.raises(CommandFailed) as exc_info:
            invoker.execute(Invocation(command="false"))

        assert exc_info.value.exit_code == 2

    def test_spawn_failure(self, invoker):
        invoker.runner.side_effect = OSError("no shell")

        with pytest.raises(IOFailure):
            invoker.execute(Invocation(command="true"))


class TestRun:
    def test_run_by_alias(self, invoker):
        confirm = Mock(return_value=True)

        result = invoker.run("ECHO2", ["hello", "world"], confirm)

        assert result.exit_code == 0
        assert result.record.id == 2
        confirm.assert_called_once_with(Invocation(command="echo hello world"))
        invoker.runner.assert_called_once_with("echo hello world")

    def test_insufficient_arguments_never_runs(self, invoker):
        confirm = Mock(return_value=True)

        with pytest.raises(InsufficientArguments):
            invoker.run("2", ["only-one"], confirm)

        confirm.assert_not_called()
        invoker.runner.assert_not_called()

    def test_declined(self, invoker):
        with pytest.raises(Cancelled):
            invoker.run("1", [], lambda invocation: False)

        invoker.runner.assert_not_called()

    def test_not_found(self, invoker):
        with pytest.raises(NotFound):
            invoker.run("zzz", [], lambda invocation: True)
