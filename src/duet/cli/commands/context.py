"""duet context -- print the LLM prompt context."""

from __future__ import annotations

import click


@click.command()
@click.option("--compact", is_flag=True, help="Print the one-line compact context.")
@click.pass_context
def context(ctx: click.Context, compact: bool) -> None:
    """Print the context block an LLM needs to edit this state."""
    from duet.cli import _duet_session

    with _duet_session(ctx) as (d, _console):
        text = d.llm.get_compact_context() if compact else d.llm.get_context()
        click.echo(text)
