"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import click
from dotenv import load_dotenv

from PrimoSearch.cli.runner import CommandRunner
from PrimoSearch.config import load_config_with_defaults
from PrimoSearch.connectors.base import INDEX_MAPPINGS
from PrimoSearch.core.models import FilterSpec


@click.group(help="PrimoSearch: query Primo Central from the terminal.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=Path("config/default.yml"),
    show_default=True,
    help="Path to YAML config file, merged over config/default.yml.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path)


@cli.command("search")
@click.argument("lookfor")
@click.option("--index", type=click.Choice(tuple(INDEX_MAPPINGS)), default="AllFields", show_default=True)
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--limit", type=click.IntRange(min=0), default=20, show_default=True)
@click.option("--sort", default=None, help="Sort field, e.g. scdate or relevance.")
@click.option(
    "--filter",
    "filters",
    multiple=True,
    help="Facet filter FIELD:VALUE; prefix with '-' to exclude or '~' to OR.",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of text.")
@click.pass_context
def search_cmd(
    ctx: click.Context,
    lookfor: str,
    index: str,
    page: int,
    limit: int,
    sort: str | None,
    filters: tuple[str, ...],
    as_json: bool,
) -> None:
    """Search Primo and print one page of results."""
    runner = CommandRunner(ctx.obj)
    runner.run_search(
        ctx.command.name,
        lookfor=lookfor,
        index=index,
        page=page,
        limit=limit,
        sort=sort,
        filters=merge_filters(parse_filter(value) for value in filters),
        as_json=as_json,
    )


@cli.command("record")
@click.argument("record_id")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of text.")
@click.pass_context
def record_cmd(ctx: click.Context, record_id: str, as_json: bool) -> None:
    """Fetch a single record by id."""
    CommandRunner(ctx.obj).run_record(ctx.command.name, record_id=record_id, as_json=as_json)


def parse_filter(value: str) -> FilterSpec:
    """Parse ``[-|~]FIELD:VALUE`` into a single-value filter.

    Raises:
        click.BadParameter: If the value has no field part.
    """
    facet_op = "AND"
    if value[:1] == "-":
        facet_op, value = "NOT", value[1:]
    elif value[:1] == "~":
        facet_op, value = "OR", value[1:]
    field, sep, facet_value = value.partition(":")
    if not sep or not field.strip():
        raise click.BadParameter(f"filter must look like FIELD:VALUE, got {value!r}")
    return FilterSpec(field=field.strip(), facet_op=facet_op, values=(facet_value,))


def merge_filters(filters: Iterable[FilterSpec]) -> list[FilterSpec]:
    """Combine filters sharing field and operator into one multi-value filter."""
    merged: dict[tuple[str, str], list[str]] = {}
    for spec in filters:
        merged.setdefault((spec.field, spec.facet_op), []).extend(spec.values)
    return [FilterSpec(field=field, facet_op=op, values=values) for (field, op), values in merged.items()]
