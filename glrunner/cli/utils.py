from __future__ import annotations

from typing import Dict, Optional

import typer
from pydantic import ValidationError

from glrunner.config import AwsConfig, ChartConfig, Config, load_config
from glrunner.logger import logger

CONFIG_FILE_HELP = (
    "Path to the config file. Defaults to ./glrunner.yaml if it exists, "
    "otherwise the built-in defaults are used."
)


def ensure_config(config_file: Optional[str]) -> Config:
    """
    Loads the configuration, exiting with code 1 if it cannot be loaded.

    Args:
        config_file (Optional[str]): Path to the config file.

    Returns:
        Config: The loaded configuration.

    Raises:
        typer.Exit: If the file is missing or the configuration is invalid.
    """
    try:
        return load_config(config_file)
    except FileNotFoundError as e:
        logger.error(str(e))
        raise typer.Exit(1)
    except (ValidationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)


def apply_overrides(
    config: Config,
    region: Optional[str] = None,
    values_file: Optional[str] = None,
    namespace: Optional[str] = None,
) -> Config:
    """
    Applies command line overrides on top of a loaded configuration.

    The overridden sections are rebuilt so their validators run again.

    Raises:
        typer.Exit: If an override is invalid.
    """
    try:
        if region:
            config.aws = AwsConfig(region=region)
        chart_update: Dict[str, str] = {}
        if values_file:
            chart_update["valuesFile"] = values_file
        if namespace:
            chart_update["namespace"] = namespace
        if chart_update:
            config.chart = ChartConfig(**{**config.chart.model_dump(), **chart_update})
    except ValidationError as e:
        logger.error(f"Invalid option: {e}")
        raise typer.Exit(1)
    return config
