import typer

from glrunner import __version__
from glrunner.cli.config import config_app
from glrunner.cli.policy import policy_app
from glrunner.cli.provision import plan, up
from glrunner.logger import setup_logger


def version_callback(version: bool) -> None:
    if version:
        typer.echo(f"glrunner CLI Version: {__version__}")
        raise typer.Exit()


cli = typer.Typer(context_settings={"help_option_names": ["-h", "--help"]})


@cli.callback()
def main_options(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose output"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Provisions a GitLab Runner on an EKS cluster.
    """
    setup_logger(verbose)


cli.command()(up)

cli.command()(plan)

cli.add_typer(config_app, name="config", help="Manage the config file.")

cli.add_typer(policy_app, name="policy", help="Print IAM policy documents.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
