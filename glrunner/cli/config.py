from __future__ import annotations

import os
from typing import Optional

import typer

from glrunner.cli.utils import CONFIG_FILE_HELP, ensure_config
from glrunner.config import Config, generate_yaml
from glrunner.constants import DEFAULT_CONFIG_FILE
from glrunner.logger import logger

config_app = typer.Typer()


@config_app.command()
def init(
    output: str = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--output",
        "-o",
        help="Where to write the config file.",
    ),
    force: bool = typer.Option(
        False, "--force", help="Overwrite the file if it already exists."
    ),
) -> None:
    """
    Writes a config file holding the default configuration.
    """
    if os.path.exists(output) and not force:
        logger.error(f"{output} already exists. Use --force to overwrite it.")
        raise typer.Exit(1)

    with open(output, "w") as f:
        f.write(generate_yaml(Config()))
    logger.info(f"Wrote {output}")


@config_app.command()
def show(
    config_file: Optional[str] = typer.Option(
        None, "--file", "-f", help=CONFIG_FILE_HELP
    ),
) -> None:
    """
    Prints the effective configuration as YAML.
    """
    typer.echo(generate_yaml(ensure_config(config_file)), nl=False)
