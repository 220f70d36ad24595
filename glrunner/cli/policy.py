from __future__ import annotations

from typing import Optional

import typer

from glrunner.cli.utils import CONFIG_FILE_HELP, ensure_config
from glrunner.utils import to_json

policy_app = typer.Typer()


@policy_app.command()
def trust(
    config_file: Optional[str] = typer.Option(
        None, "--file", "-f", help=CONFIG_FILE_HELP
    ),
) -> None:
    """
    Prints the trust policy of the runner role.
    """
    typer.echo(to_json(ensure_config(config_file).role.trustPolicy))


@policy_app.command()
def permissions(
    config_file: Optional[str] = typer.Option(
        None, "--file", "-f", help=CONFIG_FILE_HELP
    ),
) -> None:
    """
    Prints the permissions policy attached to the runner role.
    """
    typer.echo(to_json(ensure_config(config_file).policy.document))
