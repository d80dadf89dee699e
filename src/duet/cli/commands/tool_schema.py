"""duet tool-schema -- print the function-calling schema as JSON."""

from __future__ import annotations

import json

import click


@click.command("tool-schema")
@click.option(
    "--format",
    "fmt",
    default="raw",
    type=click.Choice(["raw", "openai", "anthropic"], case_sensitive=False),
    help="Output shape.",
)
@click.pass_context
def tool_schema(ctx: click.Context, fmt: str) -> None:
    """Print the patch tool schema for LLM function calling."""
    from duet.cli import _duet_session

    with _duet_session(ctx) as (d, _console):
        fmt = fmt.lower()
        if fmt == "openai":
            payload = d.llm.get_tool_definition().to_openai()
        elif fmt == "anthropic":
            payload = d.llm.get_tool_definition().to_anthropic()
        else:
            payload = d.llm.get_function_schema()
        click.echo(json.dumps(payload, indent=2))
