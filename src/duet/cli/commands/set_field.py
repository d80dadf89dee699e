"""duet set -- set one field directly."""

from __future__ import annotations

import json

import click

from duet.cli.formatting import format_error


@click.command("set")
@click.argument("field_name")
@click.argument("value_json")
@click.pass_context
def set_field(ctx: click.Context, field_name: str, value_json: str) -> None:
    """Set FIELD_NAME to VALUE_JSON (a JSON literal, e.g. 42 or '"Paris"')."""
    from duet.cli import _duet_session

    try:
        value = json.loads(value_json)
    except ValueError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="VALUE_JSON") from None

    with _duet_session(ctx) as (d, console):
        if field_name not in d.schema:
            format_error(f"Unknown field: {field_name}", console)
            raise SystemExit(1)
        result = d.schema.validate(field_name, value)
        if not result.ok:
            format_error(f"Invalid value for {field_name}: {result.error}", console)
            raise SystemExit(1)
        d.set(field_name, value)
        console.print(f"[cyan]{field_name}[/cyan] updated")
