"""Duet CLI -- inspect and edit a persisted Duet state from the terminal.

This module is NEVER imported from duet/__init__.py.
It is only loaded via the ``duet`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install duet-kit[cli]"
    ) from None

from duet.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from duet.duet import Duet


@click.group()
@click.option(
    "--db",
    default=".duet.db",
    envvar="DUET_DB",
    help="Path to the SQLite database holding persisted state.",
)
@click.option(
    "--schema",
    "schema_path",
    required=True,
    envvar="DUET_SCHEMA",
    type=click.Path(dir_okay=False),
    help="JSON schema description file.",
)
@click.option(
    "--key",
    default=None,
    envvar="DUET_KEY",
    help="Persistence key (defaults to the schema name).",
)
@click.pass_context
def cli(ctx: click.Context, db: str, schema_path: str, key: str | None) -> None:
    """Duet: shared, validated state for humans and LLMs."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["schema_path"] = schema_path
    ctx.obj["key"] = key


def _get_duet(ctx: click.Context) -> Duet:
    """Open a persisted Duet from Click context."""
    from duet.duet import create_duet
    from duet.loader import load_schema
    from duet.models.config import DuetOptions

    schema = load_schema(ctx.obj["schema_path"])
    options = DuetOptions(
        persist=ctx.obj["key"] or schema.name,
        db_path=ctx.obj["db_path"],
    )
    return create_duet(schema.name, schema.fields, options)


@contextmanager
def _duet_session(ctx: click.Context) -> Iterator[tuple[Duet, Console]]:
    """Open a Duet, yield (duet, console), close it, and format errors.

    Commands raise SystemExit themselves for non-error failures (e.g. a
    rejected patch); those pass straight through.
    """
    console = get_console()
    try:
        d = _get_duet(ctx)
        try:
            yield d, console
        finally:
            d.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from duet.cli.commands.show import show  # noqa: E402
from duet.cli.commands.context import context  # noqa: E402
from duet.cli.commands.tool_schema import tool_schema  # noqa: E402
from duet.cli.commands.apply import apply  # noqa: E402
from duet.cli.commands.set_field import set_field  # noqa: E402
from duet.cli.commands.reset import reset  # noqa: E402

cli.add_command(show)
cli.add_command(context)
cli.add_command(tool_schema)
cli.add_command(apply)
cli.add_command(set_field)
cli.add_command(reset)
