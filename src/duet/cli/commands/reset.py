"""duet reset -- restore every field to its default."""

from __future__ import annotations

import click


@click.command()
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def reset(ctx: click.Context, yes: bool) -> None:
    """Reset every field to its registered default."""
    from duet.cli import _duet_session

    if not yes:
        click.confirm("Reset all fields to their defaults?", abort=True)

    with _duet_session(ctx) as (d, console):
        d.reset()
        console.print("State reset to defaults")
