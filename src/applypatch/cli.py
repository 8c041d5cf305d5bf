from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import IO, Optional

import click

from .engine import run_patch
from .fileops import open_file, remove_file, write_file
from .logger import configure_logging
from .settings import LogLevel, Settings, load_settings


@click.command()
@click.option(
    "--patch-file",
    type=click.File("r", encoding="utf-8"),
    default=None,
    help="Read the patch from a file instead of stdin.",
)
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory patch paths are relative to.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML or JSON5 settings file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log parsing details to stderr.")
def main(
    patch_file: Optional[IO[str]],
    cwd: Optional[Path],
    config_path: Optional[Path],
    verbose: bool,
) -> None:
    """Apply a '*** Begin Patch' patch read from stdin."""
    settings = load_settings(config_path) if config_path else Settings()
    if verbose:
        settings.logging.default_level = LogLevel.debug
    configure_logging(settings.logging)

    patch_text = patch_file.read() if patch_file is not None else sys.stdin.read()
    if not patch_text:
        click.echo("Please pass patch text through stdin")
        return

    if cwd is not None:
        os.chdir(cwd)

    encoding = settings.tool.encoding
    result = run_patch(
        patch_text,
        lambda p: open_file(p, encoding=encoding),
        lambda p, c: write_file(p, c, encoding=encoding),
        remove_file,
    )
    click.echo(result)


if __name__ == "__main__":
    main()
