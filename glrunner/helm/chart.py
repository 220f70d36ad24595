from __future__ import annotations

import os
from typing import List

from glrunner.config import ChartConfig
from glrunner.errors import ChartDeploymentError
from glrunner.logger import logger
from glrunner.runner import CommandRunner


def repo_add_command(chart: ChartConfig) -> List[str]:
    return ["helm", "repo", "add", chart.repoName, chart.repoUrl]


def install_command(chart: ChartConfig) -> List[str]:
    return [
        "helm",
        "install",
        "--name",
        chart.releaseName,
        "--namespace",
        chart.namespace,
        "--values",
        chart.valuesFile,
        chart.name,
        "--version",
        chart.version,
    ]


def status_command(chart: ChartConfig) -> List[str]:
    return ["helm", "status", chart.releaseName, "--namespace", chart.namespace]


def upgrade_command(chart: ChartConfig) -> List[str]:
    return [
        "helm",
        "upgrade",
        chart.releaseName,
        chart.name,
        "--namespace",
        chart.namespace,
        "--values",
        chart.valuesFile,
        "--version",
        chart.version,
    ]


def deploy_commands(chart: ChartConfig) -> List[List[str]]:
    """The commands a fresh deployment runs, in order."""
    return [repo_add_command(chart), install_command(chart)]


def check_values_file(chart: ChartConfig) -> None:
    if not os.path.isfile(chart.valuesFile):
        raise ChartDeploymentError(f"Values file {chart.valuesFile} does not exist")


def deploy_chart(runner: CommandRunner, chart: ChartConfig) -> None:
    """
    Registers the chart repository and installs the chart release.

    When chart.upgradeExisting is set, an existing release is upgraded
    instead. Nothing is rolled back if a later command fails.

    Args:
        runner (CommandRunner): Runs the helm commands.
        chart (ChartConfig): The chart release to deploy.

    Raises:
        ChartDeploymentError: If the values file is missing or a helm command exits non-zero.
    """
    check_values_file(chart)

    result = runner.run(repo_add_command(chart))
    if not result.ok:
        raise ChartDeploymentError(
            f"Failed to add helm chart repo {chart.repoName} ({chart.repoUrl})",
            output=result.output,
        )
    logger.info(f"Added helm chart repo {chart.repoName}")

    if chart.upgradeExisting and runner.run(status_command(chart)).ok:
        logger.info(f"Release {chart.releaseName} exists, upgrading it")
        result = runner.run(upgrade_command(chart))
        action = "upgrade"
    else:
        result = runner.run(install_command(chart))
        action = "install"

    if not result.ok:
        raise ChartDeploymentError(
            f"Failed to {action} helm chart {chart.name} {chart.version} "
            f"as {chart.releaseName} in {chart.namespace}",
            output=result.output,
        )
    logger.info(
        f"Deployed {chart.name} {chart.version} as {chart.releaseName} in {chart.namespace}"
    )
