#!/usr/bin/env python3
"""
mdfreeze: freeze embedded notes into self-contained markdown

Usage:
    mdfreeze freeze notes/a.md            # Write notes/a_freeze.md
    mdfreeze freeze notes/a.md --stdout   # Print instead of saving
    mdfreeze embeds notes/a.md            # List what a note embeds
    mdfreeze config                       # Show effective settings
"""

from __future__ import annotations

import asyncio
import difflib
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, NoReturn

import click
import yaml
from click.exceptions import ClickException, UsageError

from . import __version__ as MDFREEZE_VERSION
from .config import CONFIG_FILENAME, ConfigurationError, get_vault_root, load_settings
from .core import freeze_and_save, freeze_file, list_embeds
from .errors import FreezeError
from .vault import FileVault


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def _json_dumps(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


# ─────────────────────────────────────────────────────────────────────────────
# JSON Error Handling
# ─────────────────────────────────────────────────────────────────────────────


def format_json_error(code: str, message: str, details: dict | None = None) -> str:
    """Format an error as JSON for --json-errors output."""
    error: dict[str, dict[str, object]] = {"error": {"code": code, "message": message}}
    if details:
        error["error"]["details"] = details
    return json.dumps(error)


def get_error_code_for_exception(exc: Exception) -> str:
    """Map Click exceptions to error codes."""
    if isinstance(exc, click.BadParameter):
        return "INVALID_ARGUMENT"
    elif isinstance(exc, click.MissingParameter):
        return "MISSING_ARGUMENT"
    elif isinstance(exc, click.NoSuchOption):
        return "UNKNOWN_OPTION"
    elif isinstance(exc, UsageError):
        return "USAGE_ERROR"
    elif isinstance(exc, ClickException):
        return "CLI_ERROR"
    return "UNKNOWN_ERROR"


def _handle_error(ctx: click.Context, error: Exception, exit_code: int = 1) -> NoReturn:
    """Report an error (JSON with --json-errors) and exit."""
    json_errors = ctx.obj.get("json_errors", False) if ctx.obj else False

    if isinstance(error, FreezeError):
        if json_errors:
            click.echo(format_json_error(error.code.value, error.message, error.details), err=True)
        else:
            click.echo(f"Error: {error.message}", err=True)
    elif isinstance(error, ConfigurationError):
        if json_errors:
            click.echo(format_json_error("CONFIGURATION_ERROR", str(error)), err=True)
        else:
            click.echo(f"Error: {error}", err=True)
    else:
        if json_errors:
            click.echo(format_json_error("INTERNAL_ERROR", str(error)), err=True)
        else:
            click.echo(f"Error: {error}", err=True)

    sys.exit(exit_code)


class JsonErrorGroup(click.Group):
    """Custom Click group that formats errors as JSON when --json-errors is set.

    This handles Click validation errors (bad option values, missing args, etc.)
    that occur before the command callback is invoked. Also provides typo
    suggestions for unknown commands.
    """

    def resolve_command(self, ctx, args):
        """Override to suggest similar commands for typos."""
        try:
            return super().resolve_command(ctx, args)
        except UsageError as e:
            cmd_name = args[0] if args else ""
            if cmd_name and "No such command" in str(e):
                matches = difflib.get_close_matches(
                    cmd_name, self.list_commands(ctx), n=1, cutoff=0.6
                )
                if matches:
                    raise UsageError(f"No such command '{cmd_name}'. Did you mean '{matches[0]}'?")
            raise

    def main(
        self,
        args: Sequence[str] | None = None,
        prog_name: str | None = None,
        complete_var: str | None = None,
        standalone_mode: bool = True,
        **extra: Any,
    ) -> Any:
        """Override main to catch errors during argument parsing.

        With --json-errors anywhere on the command line, the flag is moved to
        the front (so Click parses it as a global flag) and Click runs with
        standalone_mode=False so usage errors can be written as JSON.
        """
        argv = list(args) if args is not None else list(sys.argv[1:])

        if "--json-errors" not in argv:
            return super().main(args, prog_name, complete_var, standalone_mode, **extra)

        argv = [a for a in argv if a != "--json-errors"]
        argv.insert(0, "--json-errors")

        try:
            return super().main(argv, prog_name, complete_var, standalone_mode=False, **extra)
        except ClickException as e:
            code = get_error_code_for_exception(e)
            click.echo(format_json_error(code, e.format_message()), err=True)
            raise SystemExit(1)
        except SystemExit:
            # In case a subcommand calls sys.exit explicitly, preserve it.
            raise
        except Exception as e:
            click.echo(format_json_error("INTERNAL_ERROR", str(e)), err=True)
            raise SystemExit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _open_vault(note: Path, vault_dir: Path | None) -> tuple[FileVault, str]:
    """Return the vault holding a note and the note's vault-relative path."""
    root = get_vault_root(note, vault_dir)
    vault = FileVault(root)
    return vault, vault.relative_path(note)


class _Reporter:
    """Notifier that prints progress and keeps the last reported failure.

    Failures are not printed here; the command reports them once through
    _handle_error so --json-errors applies.
    """

    def __init__(self, *, err: bool = False) -> None:
        self.err = err
        self.error: FreezeError | None = None

    def __call__(self, message: str, *, error: FreezeError | None = None) -> None:
        if error is not None:
            self.error = error
            return
        click.echo(message, err=self.err)


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group(cls=JsonErrorGroup)
@click.version_option(version=MDFREEZE_VERSION, prog_name="mdfreeze")
@click.option(
    "--json-errors",
    "json_errors",
    is_flag=True,
    help="Output errors as JSON (for programmatic use)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="MDFREEZE_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, json_errors: bool, quiet: bool):
    """mdfreeze: freeze embedded notes into self-contained markdown.

    Every ![[embed]] of another note is replaced by that note's content,
    recursively. Wikilinks, tags, front matter and tables are kept as they are.

    \b
    Quick start:
      mdfreeze freeze notes/a.md            # Writes notes/a_freeze.md
      mdfreeze freeze notes/a.md --stdout   # Print the frozen text
      mdfreeze embeds notes/a.md            # What does a note embed?

    \b
    Settings (.freezeconfig in the vault root, YAML):
      save_location: custom-directory
      custom_directory: archive
      open_freeze_file: false

    \b
    For programmatic error handling:
      mdfreeze --json-errors freeze ...     # Errors output as JSON with error codes

    \b
    For quieter output:
      mdfreeze --quiet freeze ...           # Suppress warnings
      MDFREEZE_QUIET=1 mdfreeze freeze ...  # Or use environment variable
    """
    from ._logging import set_quiet_mode

    # Store options in context for subcommands to access
    ctx.ensure_object(dict)
    ctx.obj["json_errors"] = json_errors
    ctx.obj["quiet"] = quiet

    set_quiet_mode(quiet)


def _vault_option(func):
    return click.option(
        "--vault",
        "vault_dir",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        help="Vault root (default: discovered from the note's location)",
    )(func)


_note_argument = click.argument("note", type=click.Path(exists=True, dir_okay=False, path_type=Path))


# ─────────────────────────────────────────────────────────────────────────────
# Freeze Command
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@_note_argument
@_vault_option
@click.option(
    "--save-location",
    type=click.Choice(["same-directory", "custom-directory"]),
    help="Where to save the frozen file",
)
@click.option("--custom-directory", help="Vault-relative directory used with custom-directory")
@click.option("--open/--no-open", "open_file", default=None, help="Open the frozen file afterwards")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the frozen text instead of saving it")
@click.pass_context
def freeze(
    ctx: click.Context,
    note: Path,
    vault_dir: Path | None,
    save_location: str | None,
    custom_directory: str | None,
    open_file: bool | None,
    to_stdout: bool,
):
    """Freeze a note: inline every embedded note into one new document.

    The frozen copy is saved next to the note as NAME_freeze.md, or in the
    custom directory when one is configured. Existing files are never
    overwritten. Nothing is written if any embed cannot be resolved.

    \b
    Examples:
      mdfreeze freeze notes/a.md
      mdfreeze freeze notes/a.md --save-location=custom-directory --custom-directory=archive
      mdfreeze freeze notes/a.md --stdout > frozen.md
    """
    try:
        vault, path = _open_vault(note, vault_dir)
        settings = load_settings(
            vault.root,
            save_location=save_location,
            custom_directory=custom_directory,
            open_freeze_file=open_file,
        )
    except (ConfigurationError, ValueError) as e:
        _handle_error(ctx, e)

    # With --stdout, progress goes to stderr so stdout is only the document
    reporter = _Reporter(err=to_stdout)

    if to_stdout:
        content = run_async(freeze_file(vault, path, reporter))
        if content is None:
            _handle_error(ctx, reporter.error or FreezeError("Freeze failed"))
        click.echo(content, nl=False)
        return

    result = run_async(freeze_and_save(vault, path, settings, reporter))
    if result is None:
        _handle_error(ctx, reporter.error or FreezeError("Freeze failed"))

    if settings.open_freeze_file:
        click.launch(str(vault.absolute(result.path)))


# ─────────────────────────────────────────────────────────────────────────────
# Embeds Command
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@_note_argument
@_vault_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def embeds(ctx: click.Context, note: Path, vault_dir: Path | None, as_json: bool):
    """List the embeds of a note and what each one resolves to.

    Only direct embeds are listed; nothing is written.

    \b
    Examples:
      mdfreeze embeds notes/a.md
      mdfreeze embeds notes/a.md --json
    """
    try:
        vault, path = _open_vault(note, vault_dir)
        infos = run_async(list_embeds(vault, path))
    except (FreezeError, ConfigurationError, ValueError) as e:
        _handle_error(ctx, e)

    if as_json:
        click.echo(_json_dumps([info.model_dump() for info in infos]))
        return

    if not infos:
        click.echo("No embeds found.")
        return

    for info in infos:
        selector = f"#{info.subpath}" if info.subpath else ""
        if info.kind == "missing":
            click.echo(f"{info.target}{selector} -> (not found)")
        elif info.kind == "asset":
            click.echo(f"{info.target} -> {info.resolved or '(missing asset)'} [asset, kept]")
        else:
            click.echo(f"{info.target}{selector} -> {info.resolved}")


# ─────────────────────────────────────────────────────────────────────────────
# Config Command
# ─────────────────────────────────────────────────────────────────────────────


@cli.command("config")
@_vault_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config_cmd(ctx: click.Context, vault_dir: Path | None, as_json: bool):
    """Show the effective freeze settings for a vault.

    \b
    Sources, later wins:
      defaults -> .freezeconfig -> MDFREEZE_* environment variables
    """
    try:
        # Discovery starts from the working directory, as if for a note in it
        root = vault_dir.resolve() if vault_dir else get_vault_root(Path.cwd() / CONFIG_FILENAME)
        settings = load_settings(root)
    except ConfigurationError as e:
        _handle_error(ctx, e)

    data = {"vault": str(root), **settings.model_dump()}
    if as_json:
        click.echo(_json_dumps(data))
    else:
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def main():
    """Entry point for mdfreeze CLI."""
    from ._logging import configure_logging

    configure_logging()
    cli()


if __name__ == "__main__":
    main()
