from __future__ import annotations

from typing import Optional

import typer

from glrunner.cli.utils import CONFIG_FILE_HELP, apply_overrides, ensure_config
from glrunner.errors import ProvisioningError
from glrunner.logger import logger
from glrunner.pipeline import Provisioner, describe_plan


def up(
    config_file: Optional[str] = typer.Option(
        None, "--file", "-f", help=CONFIG_FILE_HELP
    ),
    region: Optional[str] = typer.Option(
        None, "--region", help="The AWS region. Overrides aws.region."
    ),
    values_file: Optional[str] = typer.Option(
        None,
        "--values",
        help="Path to the chart values file. Overrides chart.valuesFile.",
    ),
    namespace: Optional[str] = typer.Option(
        None,
        "--namespace",
        help="The namespace of the release. Overrides chart.namespace.",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Automatic yes to prompts. Use this option to bypass the confirmation "
        "prompt and directly proceed with the operation.",
    ),
) -> None:
    """
    Creates the runner IAM role and policy, binds the role to the runner
    service account and installs the runner chart.
    """
    config = apply_overrides(ensure_config(config_file), region, values_file, namespace)

    if not yes and not typer.confirm(
        f"This will create IAM role {config.role.name} and policy {config.policy.name}, "
        f"service account {config.serviceAccount.name} and helm release "
        f"{config.chart.releaseName} in {config.chart.namespace}. Proceed?",
        default=False,
    ):
        raise typer.Exit(1)

    try:
        state = Provisioner(config).run()
    except ProvisioningError as e:
        logger.error(f"{e.step} failed: {e}")
        raise typer.Exit(1)

    logger.info(f"Role: {state.role_arn}")
    logger.info(f"Policy: {state.policy_arn}")
    logger.info("Done.")


def plan(
    config_file: Optional[str] = typer.Option(
        None, "--file", "-f", help=CONFIG_FILE_HELP
    ),
) -> None:
    """
    Shows the AWS calls and commands `up` would run, without running them.
    """
    config = ensure_config(config_file)
    for i, line in enumerate(describe_plan(config), start=1):
        typer.echo(f"{i}. {line}")
