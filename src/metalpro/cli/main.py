"""Command-line interface for MetalPro."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import click

from metalpro.anaf.service import ANAFService
from metalpro.bom.headers import DEFAULT_COLUMN_MAPPING
from metalpro.bom.models import BOMParseOptions
from metalpro.bom.parser import parse_bom
from metalpro.bom.stats import get_bom_matching_stats
from metalpro.bom.template import export_rows_csv, get_bom_template, render_template_csv
from metalpro.catalog.store import default_catalog, load_catalog


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level.")
def cli(verbose: bool) -> None:
    """MetalPro command suite."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@cli.group()
def bom() -> None:
    """BOM parsing helpers."""


@bom.command("parse")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Catalog JSON to match against (defaults to the configured catalog).",
)
@click.option(
    "--no-headers",
    is_flag=True,
    help="Skip header detection: the first line is skipped and columns follow the template order.",
)
@click.option(
    "--csv",
    "as_csv",
    is_flag=True,
    help="Print the parsed rows in the template CSV layout instead of JSON.",
)
def bom_parse(file: Path, catalog_path: Optional[Path], no_headers: bool, as_csv: bool) -> None:
    """Parse FILE and auto-match its rows against the catalog."""

    catalog = load_catalog(catalog_path) if catalog_path else default_catalog()
    options = BOMParseOptions(
        auto_detect_headers=not no_headers,
        column_mapping=dict(DEFAULT_COLUMN_MAPPING) if no_headers else None,
    )
    result = parse_bom(file.read_bytes(), file.name, catalog, options)

    if as_csv:
        click.echo(export_rows_csv(result.rows), nl=False)
    else:
        _echo_json(
            {
                "result": result.model_dump(mode="json"),
                "stats": get_bom_matching_stats(result.rows).model_dump(mode="json"),
            }
        )

    if result.parse_errors and not result.rows:
        raise SystemExit(1)


@bom.command("template")
@click.option("--json", "as_json", is_flag=True, help="Print headers, samples and instructions as JSON.")
def bom_template(as_json: bool) -> None:
    """Print the BOM upload template."""

    if as_json:
        _echo_json(get_bom_template().model_dump(mode="json"))
    else:
        click.echo(render_template_csv(), nl=False)


@cli.group()
def anaf() -> None:
    """ANAF CUI/VAT checks."""


@anaf.command("validate")
@click.argument("cui")
def anaf_validate(cui: str) -> None:
    """Validate CUI against the ANAF VAT payer registry."""

    service = ANAFService()
    try:
        result = service.validate_cui(cui)
    finally:
        service.close()
    _echo_json(result.model_dump(mode="json"))
    if not result.valid:
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    cli()
