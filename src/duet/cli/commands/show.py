"""duet show -- display current field values."""

from __future__ import annotations

import click

from duet.cli.formatting import format_state


@click.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show every field, its type, and its current value."""
    from duet.cli import _duet_session

    with _duet_session(ctx) as (d, console):
        format_state(d, console)
