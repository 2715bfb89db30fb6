"""devbootstrap CLI - environment inspection commands."""

import json
import sys
from pathlib import Path

import click

from devbootstrap.cli.install import load_settings
from devbootstrap.environment import EnvironmentView
from devbootstrap.errors import ConfigurationError
from devbootstrap.install import SystemSnapshotProvider, load_manifest
from devbootstrap.logger import configure_logging
from devbootstrap.services import ComposeServiceManager, HealthAggregator


@click.command("check")
@click.option(
    "--manifest",
    "manifest_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Versions manifest, used to find the cargo CLI extension",
)
def check(manifest_path):
    """Print the prerequisite snapshot as JSON."""
    try:
        config = load_settings(manifest_path=manifest_path)
        cli_extension = None
        if Path(config.manifest_path).exists():
            cli_extension = load_manifest(config.manifest_path).cli_extension
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)

    provider = SystemSnapshotProvider(
        EnvironmentView(),
        config.get_temp_path(),
        internet_check_url=config.internet_check_url,
        cli_extension=cli_extension,
    )
    snapshot = provider.capture()
    click.echo(json.dumps(snapshot.model_dump(mode="json"), indent=2))


@click.command("status")
@click.option(
    "--compose-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Compose manifest for backing services",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "table"]),
    default="json",
    help="Output format",
)
def status(compose_file, output_format):
    """Show backing service containers and health.

    Exits 1 when any service is unhealthy.
    """
    try:
        config = load_settings(compose_file=compose_file)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)

    compose_path = config.get_compose_path()
    statuses = []
    if compose_path.exists():
        statuses = ComposeServiceManager(EnvironmentView()).list_service_statuses(compose_path)

    aggregator = HealthAggregator(config.health_endpoints, timeout=config.health_timeout_s)
    try:
        health = aggregator.check_all()
    finally:
        aggregator.close()

    if output_format == "json":
        click.echo(json.dumps({
            "containers": [s.model_dump(mode="json") for s in statuses],
            "service_health": health.model_dump(mode="json"),
        }, indent=2))
    else:
        if statuses:
            click.echo(click.style("Containers", bold=True))
            for s in statuses:
                ports = ", ".join(s.ports) or "-"
                click.echo(f"  {s.name:<20} {s.state:<10} {s.health or '-':<10} {ports}")
            click.echo()

        click.echo(click.style("Health", bold=True))
        for name, record in health.services.items():
            mark = click.style("OK", fg="green") if record.healthy else click.style("FAIL", fg="red")
            suffix = "" if record.healthy else f" ({record.error})"
            click.echo(f"  {name:<20} {mark}  {record.probe_url}{suffix}")

    sys.exit(0 if health.all_healthy else 1)
