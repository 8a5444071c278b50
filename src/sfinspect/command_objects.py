from __future__ import annotations

import json
from typing import Optional

import click

from .cli_context import connect_from_env
from .exceptions import SalesforceError
from .objects import FILTERS, search_objects


@click.command("objects")
@click.option("--search", help="Case-insensitive match on name, label or plural label.")
@click.option(
    "--filter",
    "kind",
    type=click.Choice(FILTERS),
    default="all",
    show_default=True,
    help="Restrict to one kind of sObject.",
)
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
def objects_cmd(search: Optional[str], kind: str, limit: int, offset: int) -> None:
    """List sObjects, optionally searched and filtered."""
    api, conn = connect_from_env()
    try:
        g = api.list_objects(conn)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e

    page = search_objects(
        g.get("sobjects", []), search=search, kind=kind, limit=limit, offset=offset
    )
    for s in page.sobjects:
        click.echo(f"{s.get('name')}\t{s.get('label', '')}")
    if page.has_more:
        click.echo(
            f"... {page.total_count} total; next page: --offset {page.next_offset}", err=True
        )


@click.command("describe")
@click.argument("object_name")
@click.option("--fields", "show_fields", is_flag=True, help="List fields instead of a summary.")
def describe_cmd(object_name: str, show_fields: bool) -> None:
    """Show describe metadata for one sObject."""
    api, conn = connect_from_env()
    try:
        md = api.get_object_metadata(conn, object_name)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e

    if show_fields:
        for f in md.fields:
            ref = f" -> {', '.join(sorted(f.reference_to))}" if f.reference_to else ""
            click.echo(f"{f.name}\t{f.type}{ref}")
        return

    flags = [
        name
        for name, on in (
            ("custom", md.custom),
            ("createable", md.createable),
            ("deletable", md.deletable),
            ("queryable", md.queryable),
            ("searchable", md.searchable),
            ("updateable", md.updateable),
        )
        if on
    ]
    click.echo(f"{md.name} ({md.label} / {md.label_plural}) prefix={md.key_prefix}")
    click.echo(f"flags: {', '.join(flags) or '-'}")
    click.echo(
        f"fields: {len(md.fields)}  child relationships: {len(md.child_relationships)}  "
        f"record types: {len(md.record_type_infos)}"
    )


@click.command("record")
@click.argument("object_name")
@click.argument("record_id")
def record_cmd(object_name: str, record_id: str) -> None:
    """Fetch one record with all of its stored fields as JSON."""
    api, conn = connect_from_env()
    try:
        record, _ = api.fetch_record(conn, object_name, record_id)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(record, indent=2))
