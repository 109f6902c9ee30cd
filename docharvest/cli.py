"""docharvest CLI: inspect source configs and crawl documentation sites.

Usage:
    docharvest list                          # List configured sources
    docharvest inspect python                # Show what a source extracts
    docharvest crawl python                  # Crawl into docs.json
    docharvest crawl python --resume-from python-checkpoint.json
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from docharvest.common.exceptions import (
    CheckpointCorruptException,
    ConfigNotFoundException,
    ConfigValidationException,
    IndexPageUnavailableException,
)
from docharvest.config import (
    DEFAULT_CONFIGS_DIR,
    DocSource,
    list_sources,
    load_source,
)
from docharvest.data_types import Entry
from docharvest.driver.crawl_driver import CrawlDriver, CrawlOptions

configs_dir_option = click.option(
    "--configs-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CONFIGS_DIR,
    show_default=True,
    help="Directory holding <source>.json config files.",
)


def _load_source(source_name: str, configs_dir: Path) -> DocSource:
    """Load a source config, turning failures into CLI errors."""
    try:
        return load_source(source_name, configs_dir)
    except ConfigNotFoundException as e:
        available = list_sources(configs_dir)
        hint = (
            f" Available sources: {', '.join(available)}"
            if available
            else ""
        )
        raise click.ClickException(f"{e}.{hint}") from e
    except ConfigValidationException as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(package_name="docharvest")
def cli() -> None:
    """docharvest: configuration-driven documentation crawler."""


@cli.command("list")
@configs_dir_option
def list_command(configs_dir: Path) -> None:
    """List the sources that have a config file."""
    sources = list_sources(configs_dir)
    if not sources:
        click.echo("No sources found.")
        return
    for source_name in sources:
        click.echo(source_name)


@cli.command()
@click.argument("source_name", metavar="SOURCE")
@configs_dir_option
def inspect(source_name: str, configs_dir: Path) -> None:
    """Show a source's URLs and which extraction features it configures."""
    source = _load_source(source_name, configs_dir)
    selectors = source.selectors

    click.echo(f"Name:      {source.name}")
    click.echo(f"Base URL:  {source.base_url}")
    click.echo(f"Index URL: {source.index_url}")
    if source.version:
        click.echo(f"Version:   {source.version}")
    click.echo(f"Language:  {source.default_language}")

    features = {
        "sub-navigation links": selectors.sub_navigation_links is not None,
        "ids": selectors.id is not None,
        "namespace": selectors.namespace is not None,
        "signature": selectors.signature is not None,
        "examples": bool(selectors.examples),
        "parameters": bool(selectors.parameters),
        "returns": selectors.returns is not None,
        "methods": selectors.methods is not None,
        "properties": selectors.properties is not None,
    }
    click.echo("\nFeatures:")
    for feature, enabled in features.items():
        click.echo(f"  {feature}: {'yes' if enabled else 'no'}")


@cli.command()
@click.argument("source_name", metavar="SOURCE")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("docs.json"),
    show_default=True,
    help="Where to write the extracted entries.",
)
@click.option(
    "--resume-from",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Checkpoint file to resume from.",
)
@click.option(
    "--checkpoint-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Checkpoint destination. [default: <SOURCE>-checkpoint.json]",
)
@click.option(
    "--delay",
    type=click.FloatRange(min=0),
    default=1.0,
    show_default=True,
    help="Seconds to wait between batches.",
)
@click.option(
    "--max-concurrent",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Pages fetched per batch.",
)
@click.option(
    "--max-depth",
    type=int,
    default=5,
    show_default=True,
    help="Maximum link depth.",
)
@click.option(
    "--checkpoint-interval",
    type=click.FloatRange(min=0),
    default=60.0,
    show_default=True,
    help="Seconds between automatic checkpoints.",
)
@configs_dir_option
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def crawl(
    source_name: str,
    output: Path,
    resume_from: Path | None,
    checkpoint_file: Path | None,
    delay: float,
    max_concurrent: int,
    max_depth: int,
    checkpoint_interval: float,
    configs_dir: Path,
    verbose: bool,
) -> None:
    """Crawl a documentation source and write its entries as JSON.

    SOURCE is the name of a config file in the configs directory, without
    the .json suffix.

    \b
    Examples:
        docharvest crawl python
        docharvest crawl python -o python-docs.json --delay 0.5
        docharvest crawl python --resume-from python-checkpoint.json
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    source = _load_source(source_name, configs_dir)
    options = CrawlOptions(
        delay=delay,
        max_concurrent=max_concurrent,
        max_depth=max_depth,
        checkpoint_interval=checkpoint_interval,
        checkpoint_file=checkpoint_file
        or Path(f"{source_name}-checkpoint.json"),
        resume_from=resume_from,
    )

    click.echo(f"Source: {source.name}")
    click.echo(f"Index:  {source.index_url}")

    run_status: list[str] = []

    async def _record_status(
        name: str, status: str, error: Exception | None
    ) -> None:
        run_status.append(status)

    async def _go() -> list[Entry]:
        driver = CrawlDriver(
            source,
            options,
            on_run_complete=_record_status,
        )
        return await driver.run(setup_signal_handlers=True)

    try:
        entries = asyncio.run(_go())
    except (CheckpointCorruptException, IndexPageUnavailableException) as e:
        raise click.ClickException(str(e)) from e

    if run_status == ["stopped"]:
        click.echo(
            f"Stopped with {len(entries)} entries. Resume with "
            f"--resume-from {options.checkpoint_file}"
        )
        return

    output.write_text(
        json.dumps([entry.to_json_dict() for entry in entries], indent=2),
        encoding="utf-8",
    )
    click.echo(f"Wrote {len(entries)} entries to {output}")


def main() -> None:
    """Entry point for the ``docharvest`` console script."""
    cli()
