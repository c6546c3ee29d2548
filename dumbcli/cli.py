import functools
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dumbcli import __version__
from dumbcli.clipboard import ClipboardManager
from dumbcli.config import Config, StoreConfig
from dumbcli.errors import (
    Cancelled,
    CommandFailed,
    ConfigDirError,
    DumbCLIError,
    NoOp,
)
from dumbcli.invoker import Invocation, Invoker
from dumbcli.manager import CommandManager
from dumbcli.models import Command, CommandFields, EditFields, FieldEdit
from dumbcli.porter import CommandPorter
from dumbcli.storage import CommandStorage

console = Console()

# Status for "the saved command never ran", as used by env(1)
NOT_RUN_EXIT = 125

# Answer at the interactive edit prompt that clears an optional field
CLEAR_MARKER = "-"


@dataclass
class App:
    store_config: StoreConfig
    config: Config
    storage: CommandStorage
    manager: CommandManager
    invoker: Invoker
    porter: CommandPorter

    @classmethod
    def build(cls, store_config: StoreConfig) -> "App":
        config = Config(store_config)
        storage = CommandStorage(
            store_config,
            auto_backup=bool(config.get("auto_backup", True)),
            max_backups=int(config.get("max_backups", 10)),
        )
        return cls(
            store_config=store_config,
            config=config,
            storage=storage,
            manager=CommandManager(storage, fuzzy_threshold=int(config.get("fuzzy_threshold", 70))),
            invoker=Invoker(storage),
            porter=CommandPorter(storage),
        )


pass_app = click.make_pass_decorator(App)


def setup_logging(verbose: bool) -> None:
    """Route dumbcli log records to stderr through rich"""
    logger = logging.getLogger("dumbcli")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def handle_errors(func):
    """Report dumbcli errors as one-line diagnostics"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (Cancelled, NoOp) as e:
            console.print(f"[yellow]⚠[/] {escape(str(e))}")
        except DumbCLIError as e:
            console.print(f"[red]✗[/] {escape(str(e))}")
            sys.exit(1)

    return wrapper


def _ask(text: str, default: str = "") -> Optional[str]:
    """Prompt for a value; None if the user aborted"""
    try:
        return click.prompt(text, default=default, show_default=bool(default))
    except click.Abort:
        return None


def _confirm(text: str, default: bool) -> bool:
    try:
        return click.confirm(text, default=default)
    except click.Abort:
        return False


def _collect_fields(alias: Optional[str], comment: Optional[str]) -> Optional[CommandFields]:
    """Prompt for whatever the command line did not supply"""
    command = _ask("Enter the full command")
    if command is None:
        return None
    if alias is None:
        alias = _ask("Enter an alias (optional)")
        if alias is None:
            return None
    if comment is None:
        comment = _ask("Enter the comment (optional)")
        if comment is None:
            return None
    return CommandFields(command=command, alias=alias, comment=comment)


def _print_command(record: Command) -> None:
    label = f"[cyan]#{record.id}[/]"
    if record.alias:
        label += f" [magenta]({escape(record.alias)})[/]"
    console.print(f"\n{label} 📌 {escape(record.command)}")
    if record.comment:
        console.print(f"      💬 [dim]{escape(record.comment)}[/]")


@click.group(invoke_without_command=True)
@click.option("--verbose", "-v", is_flag=True, help="Show debug diagnostics")
@click.version_option(version=__version__, prog_name="dumbcli")
@click.pass_context
def main(ctx, verbose):
    """dumbcli - bookmark shell commands and run them again later 🚀

    Commands are addressed by their numeric ID or by their alias.
    """
    setup_logging(verbose)
    store_config = StoreConfig.default()
    try:
        store_config.ensure_dir()
    except ConfigDirError as e:
        console.print(f"[red]✗ Fatal:[/] {escape(str(e))}")
        console.print("[red]  Please check permissions.[/]")
        sys.exit(1)
    ctx.obj = App.build(store_config)

    if ctx.invoked_subcommand is None:
        console.print("[bold green]👋 Welcome to DumbCLI![/]")
        console.print("   Manage your frequently used shell commands easily.\n")
        console.print("[yellow]Common Commands:[/]")
        console.print("  - dumb add              : Add a new command")
        console.print("  - dumb add 'gs: git status ## short status' : Add in one line")
        console.print("  - dumb ls               : List all commands")
        console.print("  - dumb find \"<query>\"   : Search commands (case-insensitive)")
        console.print("  - dumb run <id|alias>   : Execute a command")
        console.print("  - dumb edit <id|alias>  : Edit a command")
        console.print("  - dumb dl <id|alias>    : Delete a command")
        console.print(f"\n[dim]Use \"dumb --help\" for all commands and options.[/]")
        console.print(f"[dim]Commands are stored in: {escape(str(store_config.records_path))}[/]")


@main.command()
@click.argument("text", required=False)
@click.option("--command", "-c", help="Command line to save")
@click.option("--alias", "-a", help="Short alias (no spaces or ':')")
@click.option("--comment", "-m", help="Comment describing the command")
@pass_app
@handle_errors
def add(app, text, command, alias, comment):
    """Add a new command.

    TEXT uses the one-line form 'alias: command ## comment', where the
    alias and comment parts are optional. Without TEXT or --command the
    fields are prompted for.
    """
    if text:
        record = app.manager.create_from_power_syntax(text)
    elif command is not None:
        record = app.manager.create(CommandFields(command=command, alias=alias, comment=comment))
    else:
        record = app.manager.create(_collect_fields(alias, comment))

    console.print(f"[green]✔[/] Added command [cyan]#{record.id}[/]: {escape(record.command)}")
    if record.alias:
        console.print(f"[dim]   Run it with: dumb run {escape(record.alias)}[/]")


@main.command(name="list")
@pass_app
@handle_errors
def list_commands(app):
    """List all saved commands"""
    records = app.manager.list_all()
    if app.storage.last_error:
        console.print(f"[red]✗[/] {escape(str(app.storage.last_error))}")
    if not records:
        console.print("[yellow]ℹ No commands saved yet.[/] Use 'dumb add' to add one.")
        return

    theme = app.config.get_theme()
    table = Table(title=f"📋 Your Commands ({len(records)} total)", border_style=theme["border_color"])
    table.add_column("ID", style=theme["id_color"], justify="right", no_wrap=True)
    table.add_column("Alias", style="magenta", no_wrap=True)
    table.add_column("Command", style=theme["command_color"])
    show_comments = app.config.get("show_comments", True)
    if show_comments:
        table.add_column("Comment", style="dim")

    for record in records:
        row = [str(record.id), escape(record.alias or "—"), escape(record.command)]
        if show_comments:
            row.append(escape(record.comment or "—"))
        table.add_row(*row)

    console.print(table)


main.add_command(list_commands, name="ls")


@main.command()
@click.argument("query")
@click.option("--fuzzy", "-f", is_flag=True, help="Also match approximate spellings")
@pass_app
@handle_errors
def find(app, query, fuzzy):
    """Find saved commands by text in the command, comment or alias"""
    results = app.manager.find(query, fuzzy=fuzzy)
    if not results:
        console.print(f"[yellow]ℹ No commands found matching \"{escape(query)}\".[/]")
        return

    console.print(f"[blue]🔍 Found {len(results)} command(s) matching \"{escape(query)}\":[/]")
    for record in results:
        _print_command(record)


@main.command()
@click.argument("specifier")
@pass_app
@handle_errors
def show(app, specifier):
    """Show one command by ID or alias"""
    record = app.manager.resolve(specifier)
    _print_command(record)
    if record.placeholder_count:
        console.print(f"      [dim]takes {record.placeholder_count} argument(s)[/]")


def _collect_edit(record: Command) -> Optional[EditFields]:
    console.print(f"[blue]Editing command #{record.id}:[/]")
    console.print(f"  Current Command: [cyan]{escape(record.command)}[/]")
    console.print(f"  Current Alias:   {escape(record.alias or '—')}")
    console.print(f"  Current Comment: {escape(record.comment or '—')}")
    console.print(f"[dim]  Leave blank to keep a value; enter '{CLEAR_MARKER}' to clear alias or comment.[/]")

    answers = []
    for label in ("New command", "New alias", "New comment"):
        answer = _ask(label)
        if answer is None:
            return None
        answers.append(answer.strip())

    command, alias, comment = answers
    return EditFields(
        command=FieldEdit.from_input(command),
        alias=FieldEdit.from_input(alias, clear=alias == CLEAR_MARKER),
        comment=FieldEdit.from_input(comment, clear=comment == CLEAR_MARKER),
    )


@main.command()
@click.argument("specifier")
@click.option("--command", "-c", help="New command line")
@click.option("--alias", "-a", help="New alias")
@click.option("--comment", "-m", help="New comment")
@click.option("--clear-alias", is_flag=True, help="Remove the alias")
@click.option("--clear-comment", is_flag=True, help="Remove the comment")
@pass_app
@handle_errors
def edit(app, specifier, command, alias, comment, clear_alias, clear_comment):
    """Edit a command, its alias or its comment"""
    flags_given = any(v is not None for v in (command, alias, comment)) or clear_alias or clear_comment
    if flags_given:
        changes = EditFields(
            command=FieldEdit.from_input(command),
            alias=FieldEdit.from_input(alias, clear=clear_alias),
            comment=FieldEdit.from_input(comment, clear=clear_comment),
        )
    else:
        changes = _collect_edit

    record = app.manager.edit(specifier, changes)
    console.print(f"[green]✔[/] Command #{record.id} updated successfully.")


@main.command()
@click.argument("specifier")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@pass_app
@handle_errors
def delete(app, specifier, yes):
    """Delete a saved command"""

    def confirm(record: Command) -> bool:
        if yes or not app.config.get("confirm_delete", True):
            return True
        return _confirm(f"Delete command #{record.id}: \"{record.command}\"?", default=False)

    record = app.manager.delete(specifier, confirm)
    console.print(f"[green]✔[/] Command #{record.id} deleted successfully.")


main.add_command(delete, name="dl")


def _report_unused(invocation: Invocation) -> None:
    warning = invocation.warning
    if warning:
        console.print(f"[yellow]⚠[/] {escape(str(warning))}")


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("specifier")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--yes", "-y", is_flag=True, help="Run without asking for confirmation")
@pass_app
def run(app, specifier, args, yes):
    """Execute a saved command, filling its {} placeholders with ARGS.

    Exits with the command's own status, or 125 if it never ran.
    """

    def confirm(invocation: Invocation) -> bool:
        _report_unused(invocation)
        if yes or not app.config.get("confirm_run", True):
            return True
        return _confirm(f"Run: \"{invocation.command}\"?", default=True)

    try:
        result = app.invoker.run(specifier, args, confirm)
    except CommandFailed as e:
        console.print(f"[red]❌ Command failed.[/] Exit code: {e.exit_code}")
        sys.exit(e.exit_code)
    except Cancelled as e:
        console.print(f"[yellow]⚠[/] {escape(str(e))}")
        sys.exit(NOT_RUN_EXIT)
    except DumbCLIError as e:
        console.print(f"[red]✗[/] {escape(str(e))}")
        sys.exit(NOT_RUN_EXIT)

    console.print(f"[green]✅ Command #{result.record.id} finished.[/]")


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("specifier")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@pass_app
@handle_errors
def copy(app, specifier, args):
    """Copy a saved command, with placeholders filled, to the clipboard"""
    record = app.manager.resolve(specifier)
    invocation = app.invoker.prepare(record, args)
    _report_unused(invocation)

    if ClipboardManager().copy(invocation.command):
        console.print(f"[green]✔[/] Copied to clipboard: {escape(invocation.command)}")
    else:
        console.print("[red]✗[/] No clipboard available; here is the command:")
        click.echo(invocation.command)
        sys.exit(1)


@main.command()
@click.argument("directory", type=click.Path(path_type=Path))
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "yaml"]), default="json",
              help="Export file format")
@pass_app
@handle_errors
def export(app, directory, fmt):
    """Export all commands to a timestamped file in DIRECTORY"""
    filepath = app.porter.export(directory, format=fmt)
    console.print(f"[green]✔[/] Exported commands to [cyan]{escape(str(filepath))}[/]")


@main.command(name="import")
@click.argument("file", type=click.Path(path_type=Path))
@click.option("--append/--replace", default=True, help="Add to existing commands or replace them")
@click.option("--yes", "-y", is_flag=True, help="Replace without asking for confirmation")
@pass_app
@handle_errors
def import_commands(app, file, append, yes):
    """Import commands from a JSON or YAML array"""

    def confirm_replace() -> bool:
        if yes:
            return True
        return _confirm("Replace ALL saved commands with the imported ones?", default=False)

    result = app.porter.import_file(file, append=append, confirm_replace=confirm_replace)

    mode = "appended" if result.append else "replaced existing commands with"
    console.print(f"[green]✔[/] Import complete: {mode} {result.imported} command(s)")
    if result.invalid:
        console.print(f"[yellow]⚠[/] Skipped {result.invalid} entr{'y' if result.invalid == 1 else 'ies'} without a command")
    for alias in result.dropped_aliases:
        console.print(f"[yellow]⚠[/] Alias '{escape(alias)}' was invalid or already in use; imported without it")


@main.command()
@pass_app
@handle_errors
def dump(app):
    """Show the raw contents of the commands file"""
    console.print(f"[magenta]📂 Raw data from {escape(str(app.storage.storage_path))}:[/]")
    click.echo(app.storage.dump_raw())


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@pass_app
@handle_errors
def restore(app, yes):
    """Restore commands from the most recent backup"""
    if not yes and not _confirm("Overwrite saved commands with the latest backup?", default=False):
        raise Cancelled("Restore canceled")
    backup = app.storage.restore_latest_backup()
    if backup is None:
        console.print("[yellow]⚠[/] No backups found")
        return
    console.print(f"[green]✔[/] Restored commands from {escape(backup.name)}")


@main.command(name="config")
@click.argument("key", required=False)
@click.argument("value", required=False)
@pass_app
@handle_errors
def config_cmd(app, key, value):
    """Show or change settings"""
    if key is None:
        for name, current in sorted(app.config.config.items()):
            console.print(f"[cyan]{name}[/] = {escape(json.dumps(current))}")
        return

    if key not in Config.DEFAULT_CONFIG:
        console.print(f"[red]✗[/] Unknown setting '{escape(key)}'")
        sys.exit(1)

    if value is None:
        console.print(f"[cyan]{key}[/] = {escape(json.dumps(app.config.get(key)))}")
        return

    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    if key == "theme" and not Config.is_valid(key, parsed):
        console.print(f"[red]✗[/] Unknown theme '{escape(str(parsed))}'. Choose from: {', '.join(Config.THEMES)}")
        sys.exit(1)
    if not Config.is_valid(key, parsed):
        expected = "true or false" if isinstance(Config.DEFAULT_CONFIG[key], bool) else "a non-negative integer"
        console.print(f"[red]✗[/] Invalid value for {key}: {escape(value)} (expected {expected})")
        sys.exit(1)
    app.config.set(key, parsed)
    console.print(f"[green]✔[/] {key} = {escape(json.dumps(parsed))}")


if __name__ == "__main__":
    main()
