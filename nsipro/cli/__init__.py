"""CLI commands for nsipro."""

from __future__ import annotations

import contextlib
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


def _format_version(prog_name: str) -> str:
    """Format version string with release date if available."""
    from nsipro.version import __release_date__, __version__  # noqa: PLC0415

    version_str = f"{prog_name} (nsipro {__version__}"
    if __release_date__:
        version_str += f", released {__release_date__}"
    version_str += ")"
    return version_str


@contextlib.contextmanager
def handle_config_error() -> Iterator[None]:
    """Context manager that catches config ``ValidationError`` and exits cleanly.

    Instead of dumping a raw Pydantic traceback, this prints a short message
    naming the offending ``NSIPRO_*`` variables.

    Usage
    -----
    ::

        with handle_config_error():
            from nsipro.config import settings
            settings.NSIPRO_FILE_EXTENSION  # may raise ValidationError
    """
    import click  # noqa: PLC0415
    from pydantic import ValidationError  # noqa: PLC0415

    try:
        yield
    except ValidationError as exc:
        fields = [e.get("loc", ("?",))[-1] for e in exc.errors()]
        field_list = ", ".join(str(f) for f in fields)

        lines = [
            "Error: nsipro configuration is invalid.",
            "",
            f"  Invalid fields: {field_list}",
            "",
            "Check the NSIPRO_* environment variables and the .env file in the",
            "current directory.",
            "",
        ]

        click.echo("\n".join(lines), err=True)
        sys.exit(1)
