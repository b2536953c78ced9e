"""CLI entrypoint for diag-bundler."""

import logging
from pathlib import Path

import rich_click as click

from diag_bundler import __version__
from diag_bundler.gather.controllers import CatalogCommand, GatherCliController, GatherCommand

click.rich_click.USE_MARKDOWN = True
GATHER_CONTROLLER = GatherCliController()


@click.group()
@click.version_option(version=__version__, prog_name="diag-bundler")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for progress messages on stderr.",
)
def diag_bundler(log_level: str) -> None:
    """Diagnostic bundle CLI."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@diag_bundler.command("gather")
@click.option(
    "--staging-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory receiving artifacts. Defaults to DIAG_BUNDLER_STAGING_DIR.",
)
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Group catalog JSON. Defaults to DIAG_BUNDLER_CATALOG_PATH.",
)
@click.option(
    "--trace/--no-trace",
    "include_trace",
    default=None,
    help="Include trace groups. Defaults to DIAG_BUNDLER_INCLUDE_TRACE.",
)
@click.option(
    "--trace-dwell-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Override how long trace captures run before being stopped.",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit with an error when any task failed.",
)
def gather(
    staging_dir: Path | None,
    catalog_path: Path | None,
    include_trace: bool | None,
    trace_dwell_seconds: float | None,
    strict: bool,
) -> None:
    """Run every catalog group concurrently into the staging directory."""

    try:
        result = GATHER_CONTROLLER.gather(
            GatherCommand(
                staging_dir=staging_dir,
                catalog_path=catalog_path,
                include_trace=include_trace,
                trace_dwell_seconds=trace_dwell_seconds,
                strict=strict,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Gathering finished with failures.")


@diag_bundler.command("catalog")
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Group catalog JSON. Defaults to DIAG_BUNDLER_CATALOG_PATH.",
)
def catalog(catalog_path: Path | None) -> None:
    """List catalog groups and their tasks."""

    try:
        lines = GATHER_CONTROLLER.list_catalog(CatalogCommand(catalog_path=catalog_path))
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    diag_bundler()
