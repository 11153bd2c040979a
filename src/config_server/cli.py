"""CLI for Config Server."""

import json
import os
import sys
from typing import NoReturn

import click
import structlog

from config_server.config.logging import configure_logging
from config_server.config.settings import CONFIG_FILE_ENV, get_settings
from config_server.core.exceptions import ConfigServerError

logger = structlog.get_logger(__name__)


def _create_service():
    """Create the environment service from the current settings."""
    from config_server.repositories.factory import RepositoryFactory
    from config_server.services.environment import EnvironmentService

    factory = RepositoryFactory(get_settings())
    return EnvironmentService(factory.get_environment_repository())


def _fail(error: ConfigServerError) -> NoReturn:
    click.echo(f"Error: {error.message}", err=True)
    if error.details:
        click.echo(f"  {json.dumps(error.details, default=str)}", err=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(dir_okay=False),
    help="YAML settings file (default: config-server.yml)",
)
def cli(verbose: bool, config_file: str | None) -> None:
    """Config Server: externalized configuration from git repositories."""
    if config_file:
        os.environ[CONFIG_FILE_ENV] = config_file
        get_settings.cache_clear()
    log_level = "DEBUG" if verbose else get_settings().log_level
    configure_logging(log_level=log_level)


@cli.command()
def serve() -> None:
    """Run the HTTP server."""
    from config_server.api.main import run

    settings = get_settings()
    logger.info("Starting server", host=settings.api_host, port=settings.api_port)
    run()


@cli.command()
@click.argument("application")
@click.argument("profile", default="default")
@click.argument("label", required=False)
def resolve(application: str, profile: str, label: str | None) -> None:
    """Print the environment for APPLICATION, PROFILE and LABEL as JSON."""
    try:
        environment = _create_service().find_one(application, profile, label)
    except ConfigServerError as e:
        _fail(e)
    click.echo(json.dumps(environment.model_dump(by_alias=True), indent=2, default=str))


@cli.command()
@click.argument("application")
@click.argument("profile", default="default")
@click.argument("label", required=False)
def locations(application: str, profile: str, label: str | None) -> None:
    """Sync the repositories and list the directories searched for files."""
    try:
        results = _create_service().get_locations(application, profile, label)
    except ConfigServerError as e:
        _fail(e)

    for result in results:
        click.echo(f"{result.label} @ {result.revision}")
        for path in result.search_paths:
            click.echo(f"  {path}")


if __name__ == "__main__":
    cli()
