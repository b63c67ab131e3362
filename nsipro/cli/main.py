# ruff: noqa: FBT001
"""
The ``nsipro`` command: parse ``.nsipro`` files into a CSV table.

Every file given on the command line is parsed; directories contribute the
``.nsipro`` files they contain. Each parsed record is flattened into one row
of the output table. Files that cannot be parsed are logged and skipped.

Usage
-----

.. code-block:: bash

    nsipro [OPTIONS] PATH...

Options
-------

.. code-block:: bash

    -r, --recursive : Search directories recursively
    -o, --output    : CSV file to write (default: <name of first PATH>.csv)
    --json          : Also write the full records to a .json file next to the CSV
    --no-progress   : Do not show a progress bar
    -v, --verbose   : Increase verbosity (-v for INFO, -vv for DEBUG)
    --version       : Show version and exit
    --help          : Show help message and exit
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from tqdm import tqdm

from nsipro.cli import _format_version

# Parser imports are lazy-loaded inside main() so that a configuration error
# is reported by handle_config_error instead of as a traceback

logger = logging.getLogger(__name__)
console = Console(stderr=True)


def _get_log_level(verbose: int) -> int:
    """
    Convert verbose count to logging level.

    Parameters
    ----------
    verbose : int
        Verbosity level (0 = WARNING, 1 = INFO, 2+ = DEBUG)

    Returns
    -------
    int
        Logging level constant from the logging module
    """
    if verbose == 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def _setup_logging(log_level: int) -> list[logging.FileHandler]:
    """
    Configure console logging, plus file logging if a log directory is set.

    Parameters
    ----------
    log_level : int
        Logging level constant from the logging module

    Returns
    -------
    list[logging.FileHandler]
        The file handlers that were added (empty if ``NSIPRO_LOG_DIR`` is unset)
    """
    from nsipro.config import settings  # noqa: PLC0415
    from nsipro.utils.logging import add_file_handlers, setup_loggers  # noqa: PLC0415

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    setup_loggers(log_level)

    if settings.NSIPRO_LOG_DIR is None:
        return []
    handlers = add_file_handlers(settings.NSIPRO_LOG_DIR)
    logger.info("Logging to directory: %s", settings.NSIPRO_LOG_DIR)
    return handlers


def _default_output(paths: tuple[str, ...]) -> Path:
    """Name the CSV after the first input path, in the current directory."""
    first = Path(paths[0]).resolve()
    return Path(f"{first.name}.csv")


def _parse_files(
    files: list[Path], progress: bool
) -> tuple[list[dict], list[dict]]:
    """
    Parse and tabulate every file, skipping the ones that fail.

    A file is skipped if it cannot be read or parsed, or if its record cannot
    be flattened into a row (two tags flatten to the same column name).

    Parameters
    ----------
    files : list[pathlib.Path]
        Files to parse
    progress : bool
        Whether to show a progress bar

    Returns
    -------
    tuple[list[dict], list[dict]]
        The records and their table rows, one per file that could be
        processed, in the order of ``files``
    """
    from nsipro.exporters import tabulate_record  # noqa: PLC0415
    from nsipro.extractors import ParseError, parse_nsipro  # noqa: PLC0415

    records = []
    rows = []
    for fname in tqdm(files, unit="file") if progress else files:
        try:
            record = parse_nsipro(fname)
            row = tabulate_record(record)
        except ParseError:
            logger.exception("Skipping %s", fname)
        except OSError:
            logger.exception("Could not read %s", fname)
        except KeyError:
            logger.exception("Skipping %s: tag names collide when flattened", fname)
        else:
            records.append(record)
            rows.append(row)
    return records, rows


@click.command(
    epilog="""
Examples:

  \b
  # Parse a single file into scan_0042.nsipro.csv
  $ nsipro scan_0042.nsipro

  \b
  # Parse a whole tree of project folders
  $ nsipro -r /data/ct_projects -o projects.csv

  \b
  # Also keep the full records as JSON
  $ nsipro -r /data/ct_projects -o projects.csv --json
"""
)
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    "-r",
    "--recursive",
    is_flag=True,
    help="Search directories recursively for .nsipro files",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="CSV file to write. Defaults to '<name of first PATH>.csv'.",
)
@click.option(
    "--json",
    "write_json_output",
    is_flag=True,
    help="Also write the full records to a .json file next to the CSV",
)
@click.option(
    "--progress/--no-progress",
    default=True,
    help="Show a progress bar while parsing",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG)",
)
@click.version_option(version=None, message=_format_version("nsipro"))
def main(
    *,
    paths: tuple[str, ...],
    recursive: bool,
    output: Path | None,
    write_json_output: bool,
    progress: bool,
    verbose: int,
) -> None:
    """
    Parse NSI CT project (.nsipro) files into a CSV table.

    Each PATH is either a .nsipro file or a directory containing them.
    """
    from nsipro.cli import handle_config_error  # noqa: PLC0415

    with handle_config_error():
        file_handlers = _setup_logging(_get_log_level(verbose))
        try:
            _run(paths, recursive, output, write_json_output, progress)
        finally:
            for handler in file_handlers:
                logging.root.removeHandler(handler)
                handler.close()


def _run(
    paths: tuple[str, ...],
    recursive: bool,
    output: Path | None,
    write_json_output: bool,
    progress: bool,
) -> None:
    from nsipro.exporters import write_csv, write_json  # noqa: PLC0415
    from nsipro.utils.files import find_nsipro_files  # noqa: PLC0415

    logger.info("Processing %s", ", ".join(paths))
    try:
        files = find_nsipro_files(paths, recursive=recursive)
    except (FileNotFoundError, PermissionError) as e:
        raise click.ClickException(str(e)) from e
    logger.info("Found %d file(s)", len(files))

    records, rows = _parse_files(files, progress)
    if len(records) < len(files):
        logger.warning(
            "Skipped %d of %d file(s)", len(files) - len(records), len(files)
        )

    output = output if output is not None else _default_output(paths)
    write_csv(rows, output)
    click.echo(f"Saved '{output}'")

    if write_json_output:
        json_output = output.with_suffix(".json")
        write_json(records, json_output)
        click.echo(f"Saved '{json_output}'")


if __name__ == "__main__":  # pragma: no cover
    main()
