"""duet apply -- apply a JSON Patch to the persisted state."""

from __future__ import annotations

import click

from duet.cli.formatting import format_result


@click.command()
@click.argument("patch_json")
@click.option(
    "--source",
    default="llm",
    type=click.Choice(["user", "llm", "system"], case_sensitive=False),
    help="Who is submitting the patch.",
)
@click.pass_context
def apply(ctx: click.Context, patch_json: str, source: str) -> None:
    """Apply PATCH_JSON atomically.

    PATCH_JSON is a JSON array of operations or {"patch": [...]}.
    Pass "-" to read it from stdin. Exits 1 if the patch is rejected.
    """
    from duet.cli import _duet_session

    if patch_json == "-":
        patch_json = click.get_text_stream("stdin").read()

    with _duet_session(ctx) as (d, console):
        result = d.llm.apply_json(patch_json, source=source.lower())
        format_result(result, console)
        if not result.success:
            raise SystemExit(1)
