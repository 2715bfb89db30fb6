"""devbootstrap CLI - install command."""

import sys
import traceback
from typing import Optional

import click
from pydantic import ValidationError

from devbootstrap.config import DevBootstrapConfig, get_config
from devbootstrap.environment import EnvironmentView
from devbootstrap.errors import ConfigurationError, FailureKind
from devbootstrap.install import (
    ArtifactInstaller,
    CliExtensionInstaller,
    SystemSnapshotProvider,
    VersionsManifest,
    load_manifest,
)
from devbootstrap.logger import configure_logging
from devbootstrap.models import Category, FinalResult
from devbootstrap.orchestrator import Orchestrator
from devbootstrap.plan import build_plan
from devbootstrap.process import CommandRunner
from devbootstrap.readiness import ReadinessChecks
from devbootstrap.services import ComposeServiceManager, HealthAggregator
from devbootstrap.telemetry import TelemetryEmitter
from devbootstrap.tracing import configure_tracing, flush_tracing

_INSTALLABLE = (Category.DOCKER, Category.NODEJS, Category.RUST)

_DISPLAY_NAMES = {
    Category.DOCKER: "Docker",
    Category.NODEJS: "Node.js",
    Category.RUST: "Rust",
}


def load_settings(**overrides) -> DevBootstrapConfig:
    """
    Build settings from CLI overrides, dropping options the user left unset.

    Raises:
        ConfigurationError: If settings fail validation
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    try:
        return get_config(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


def emit_configuration_error(emitter: TelemetryEmitter, error: ConfigurationError) -> None:
    emitter.emit_result(
        FinalResult(
            success=False,
            message="Configuration error",
            error=str(error),
            error_kind=FailureKind.CONFIGURATION,
            stack_trace=traceback.format_exc(),
        )
    )


def build_orchestrator(
    config: DevBootstrapConfig,
    manifest: VersionsManifest,
    emitter: TelemetryEmitter,
    env: Optional[EnvironmentView] = None,
    runner: Optional[CommandRunner] = None,
) -> Orchestrator:
    """Wire the real collaborators into an orchestrator."""
    env = env or EnvironmentView()
    runner = runner or CommandRunner()

    installers = {}
    for category in _INSTALLABLE:
        spec = getattr(manifest, category.value.lower())
        if spec is not None:
            installers[category] = ArtifactInstaller(
                _DISPLAY_NAMES[category],
                spec,
                env,
                runner=runner,
                timeout=config.subprocess_timeout_s,
            )

    extension_installer = None
    if manifest.cli_extension is not None:
        extension_installer = CliExtensionInstaller(
            manifest.cli_extension, env, runner=runner, timeout=config.subprocess_timeout_s
        )

    return Orchestrator(
        installers=installers,
        service_manager=ComposeServiceManager(env, runner=runner, timeout=config.subprocess_timeout_s),
        health=HealthAggregator(config.health_endpoints, timeout=config.health_timeout_s),
        snapshot_provider=SystemSnapshotProvider(
            env,
            config.get_temp_path(),
            runner=runner,
            internet_check_url=config.internet_check_url,
            cli_extension=manifest.cli_extension,
        ),
        emitter=emitter,
        readiness=ReadinessChecks(env, runner=runner),
        cli_extension_installer=extension_installer,
        config=config,
    )


@click.command("install")
@click.option("--skip-docker", is_flag=True, help="Do not install Docker")
@click.option("--skip-nodejs", is_flag=True, help="Do not install Node.js")
@click.option("--skip-rust", is_flag=True, help="Do not install the Rust toolchain")
@click.option("--skip-cli-extension", is_flag=True, help="Do not install the cargo CLI extension")
@click.option("--skip-services", is_flag=True, help="Do not pull, start or verify backing services")
@click.option(
    "--temp-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for downloaded installers",
)
@click.option(
    "--manifest",
    "manifest_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Versions manifest (YAML)",
)
@click.option(
    "--compose-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Compose manifest for backing services",
)
@click.option("--settle-seconds", type=float, default=None, help="Delay before verifying service health")
@click.option("--otlp-endpoint", default=None, help="Export run traces to this OTLP gRPC endpoint")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Log level (logs go to stderr)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "text"]),
    default=None,
    help="Log format",
)
def install(
    skip_docker,
    skip_nodejs,
    skip_rust,
    skip_cli_extension,
    skip_services,
    temp_dir,
    manifest_path,
    compose_file,
    settle_seconds,
    otlp_endpoint,
    log_level,
    log_format,
):
    """Install dependencies and bring up backing services.

    Progress is written to stdout as PROGRESS:/RESULT: prefixed JSON lines.
    Exits 0 on success (including advisory warnings) and 1 on any fatal
    failure.

    Examples:

        # Full bootstrap
        devbootstrap install

        # Dependencies only
        devbootstrap install --skip-services

        # Custom manifest and download location
        devbootstrap install --manifest ci/versions.yaml --temp-dir /tmp/dl
    """
    emitter = TelemetryEmitter()

    try:
        config = load_settings(
            temp_dir=temp_dir,
            manifest_path=manifest_path,
            compose_file=compose_file,
            settle_seconds=settle_seconds,
            otlp_endpoint=otlp_endpoint,
            log_level=log_level,
            log_format=log_format,
        )
    except ConfigurationError as e:
        emit_configuration_error(emitter, e)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)

    plan = build_plan(
        skip_docker=skip_docker,
        skip_nodejs=skip_nodejs,
        skip_rust=skip_rust,
        skip_cli_extension=skip_cli_extension,
        skip_services=skip_services,
        config=config,
    )

    # The versions manifest is only needed when something may be installed
    manifest = VersionsManifest()
    if any(plan.includes(c) for c in _INSTALLABLE):
        try:
            manifest = load_manifest(config.manifest_path)
            manifest.validate_for(list(plan.categories), plan.install_cli_extension)
        except ConfigurationError as e:
            emit_configuration_error(emitter, e)
            sys.exit(1)

    tracing_enabled = bool(config.otlp_endpoint) and configure_tracing(config.otlp_endpoint)

    orchestrator = build_orchestrator(config, manifest, emitter)
    try:
        result = orchestrator.run(plan)
    finally:
        orchestrator.health.close()
        if tracing_enabled:
            flush_tracing()

    sys.exit(0 if result.success else 1)
