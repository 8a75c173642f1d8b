"""CLI interface for rawsheet."""

import asyncio
import logging
import sys
from functools import partial
from pathlib import Path

import click

from rawsheet.config import Config
from rawsheet.extractor import (
    ExiftoolCapability,
    ExiftoolNotFoundError,
    ExiftoolRunner,
    MetadataReader,
    get_raw_decoder,
    load_rawpy,
)
from rawsheet.models import RawImageFile
from rawsheet.render import ContactSheetRenderer, describe
from rawsheet.resolver import ThumbnailResolver
from rawsheet.scanner import collect_raw_files


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj["config"] = Config()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_resolver(config: Config) -> ThumbnailResolver:
    """Wire exiftool and the shared raw decoder into a resolver."""
    try:
        runner = ExiftoolRunner(config.extractor.exiftool_path)
        capability = ExiftoolCapability(runner, config.extractor.thumbnail_tags)
    except ExiftoolNotFoundError as e:
        click.echo(f"Warning: {e}", err=True)
        click.echo("Continuing with the raw decoder only.", err=True)
        capability = None

    decoder = get_raw_decoder(partial(load_rawpy, jpeg_quality=config.extractor.jpeg_quality))
    return ThumbnailResolver(MetadataReader(capability), decoder)


def _select_files(config: Config, paths: tuple[Path, ...]) -> list[RawImageFile]:
    selected = collect_raw_files(paths, config.extensions)
    if not selected:
        extensions = ", ".join(f".{ext}" for ext in sorted(config.extensions))
        click.echo(f"Error: No raw files ({extensions}) found in the selection.", err=True)
        sys.exit(1)
    return [RawImageFile.from_path(path) for path in selected]


@cli.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Contact sheet image path")
@click.option("--columns", type=click.IntRange(min=1), help="Tiles per row")
@click.option("--tile-size", type=click.IntRange(min=32), help="Tile edge in pixels")
@click.pass_context
def sheet(
    ctx: click.Context,
    paths: tuple[Path, ...],
    output: Path | None,
    columns: int | None,
    tile_size: int | None,
) -> None:
    """Render a contact sheet for CR2 files and directories."""
    config: Config = ctx.obj["config"]
    if columns is not None:
        config.sheet.columns = columns
    if tile_size is not None:
        config.sheet.tile_size = tile_size
    output_path = output or config.output_path

    files = _select_files(config, paths)
    resolver = build_resolver(config)
    try:
        outcomes = asyncio.run(resolver.resolve_batch(files))
    except KeyboardInterrupt:
        sys.exit(130)

    try:
        ContactSheetRenderer(config.sheet).save(outcomes, output_path)
    except (OSError, ValueError) as e:
        click.echo(f"Error: Could not write {output_path}: {e}", err=True)
        sys.exit(1)

    stats = resolver.stats
    click.echo(f"Contact sheet written to {output_path}")
    click.echo(f"  Files: {stats.total_files:,}")
    click.echo(f"  Thumbnails from metadata: {stats.files_from_metadata:,}")
    click.echo(f"  Thumbnails from raw decoder: {stats.files_from_decoder:,}")
    click.echo(f"  Without thumbnail: {stats.files_without_thumbnail:,}")
    click.echo(f"  Without EXIF: {stats.files_without_exif:,}")


@cli.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.pass_context
def inspect(ctx: click.Context, paths: tuple[Path, ...]) -> None:
    """Print the thumbnail source and exposure of each CR2 file."""
    config: Config = ctx.obj["config"]
    files = _select_files(config, paths)
    resolver = build_resolver(config)

    async def _print_outcomes() -> None:
        async for outcome in resolver.iter_resolve(files):
            click.echo(describe(outcome))

    try:
        asyncio.run(_print_outcomes())
    except KeyboardInterrupt:
        sys.exit(130)


def main() -> None:
    """Entry point for the CLI."""
    cli(standalone_mode=True)  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
    main()
