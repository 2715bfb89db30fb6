"""
Installation orchestrator.

Runs an InstallationPlan strictly in order, one blocking step at a time:

    Prerequisites -> Docker -> NodeJs -> Rust -> ServicePull -> ServiceStart -> ServiceVerify

For every step the orchestrator decides between skip, run and fail, emits
one progress event per status transition and, at the end, exactly one final
result. Collaborators report plain booleans or records; this module is the
only place that decides whether a failure is fatal:

    Docker / NodeJs / Rust install failure    fatal
    readiness poll timeout                    fatal
    cargo CLI extension failure               advisory (Rust step still Complete)
    image pre-pull failure                    advisory (Warning)
    service start failure                     fatal
    unhealthy services after start            advisory (Warning)
"""

from __future__ import annotations

import logging
import time
import traceback
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from devbootstrap.config import DevBootstrapConfig, get_config
from devbootstrap.errors import FailureKind
from devbootstrap.install.installers import DependencyInstaller
from devbootstrap.install.prerequisites import SnapshotProvider
from devbootstrap.models import (
    AggregateHealth,
    Category,
    DependencyState,
    FinalResult,
    PrerequisiteSnapshot,
    Step,
    StepStatus,
    StepTrace,
)
from devbootstrap.plan import InstallationPlan
from devbootstrap.readiness import ReadinessChecks, poll_until
from devbootstrap.services.compose import ServiceManager
from devbootstrap.services.health import HealthAggregator
from devbootstrap.telemetry import TelemetryEmitter
from devbootstrap.tracing import get_tracer

__all__ = ["Orchestrator", "StepOutcome"]

logger = logging.getLogger(__name__)

_INSTALL_CATEGORIES = (Category.DOCKER, Category.NODEJS, Category.RUST)

# Binary polled after install to confirm the toolchain is usable
_TOOLCHAIN_BINARIES = {
    Category.NODEJS: "node",
    Category.RUST: "cargo",
}

_RUNNING_DETAILS = {
    Category.PREREQUISITES: "Checking system prerequisites",
    Category.DOCKER: "Installing Docker",
    Category.NODEJS: "Installing Node.js",
    Category.RUST: "Installing Rust toolchain",
    Category.SERVICE_PULL: "Pulling service images",
    Category.SERVICE_START: "Starting services",
    Category.SERVICE_VERIFY: "Verifying service health",
}


def _already_installed(label: str, state: DependencyState) -> str:
    if state.version:
        return f"{label} {state.version} already installed"
    return f"{label} already installed"


@dataclass(frozen=True)
class StepOutcome:
    """Classified result of running one step."""
    status: StepStatus
    details: str
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None

    @classmethod
    def complete(cls, details: str) -> "StepOutcome":
        return cls(StepStatus.COMPLETE, details)

    @classmethod
    def warning(cls, details: str, error: str, kind: FailureKind) -> "StepOutcome":
        return cls(StepStatus.WARNING, details, error, kind)

    @classmethod
    def failed(cls, error: str, kind: FailureKind) -> "StepOutcome":
        return cls(StepStatus.FAILED, error, error, kind)


class Orchestrator:
    """
    Sequencer for a single bootstrap run.

    Args:
        installers: Installer per installable category (Docker, NodeJs, Rust)
        service_manager: Compose collaborator
        health: Health aggregator used by the verify step
        snapshot_provider: Captures the prerequisite snapshot when run() is
            not given one
        emitter: Progress/result writer
        readiness: Predicates polled after installs
        cli_extension_installer: Optional cargo extension installer, run as
            part of the Rust step
        config: Poll intervals, settle delay and disk threshold
        sleep: Blocking sleep (injectable for tests)
        clock: Monotonic clock (injectable for tests)
        tracer: OpenTelemetry tracer; defaults to the global one
    """

    def __init__(
        self,
        installers: Mapping[Category, DependencyInstaller],
        service_manager: ServiceManager,
        health: HealthAggregator,
        snapshot_provider: SnapshotProvider,
        emitter: TelemetryEmitter,
        readiness: ReadinessChecks,
        cli_extension_installer: Optional[DependencyInstaller] = None,
        config: Optional[DevBootstrapConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        tracer: Optional[trace.Tracer] = None,
    ) -> None:
        self.installers = dict(installers)
        self.service_manager = service_manager
        self.health = health
        self.snapshot_provider = snapshot_provider
        self.emitter = emitter
        self.readiness = readiness
        self.cli_extension_installer = cli_extension_installer
        self.config = config or get_config()
        self._sleep = sleep
        self._clock = clock
        self._tracer = tracer or get_tracer()

        self._snapshot: Optional[PrerequisiteSnapshot] = None
        self._health: Optional[AggregateHealth] = None
        self._warnings: List[str] = []
        self._steps: List[Step] = []

        self._handlers: Dict[Category, Callable[[InstallationPlan], StepOutcome]] = {
            Category.PREREQUISITES: self._run_prerequisites,
            Category.DOCKER: self._run_docker,
            Category.NODEJS: self._run_nodejs,
            Category.RUST: self._run_rust,
            Category.SERVICE_PULL: self._run_service_pull,
            Category.SERVICE_START: self._run_service_start,
            Category.SERVICE_VERIFY: self._run_service_verify,
        }

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def run(self, plan: InstallationPlan, snapshot: Optional[PrerequisiteSnapshot] = None) -> FinalResult:
        """
        Execute the plan and emit the final result.

        Args:
            plan: Categories to run, fixed for the whole run
            snapshot: Pre-captured prerequisite snapshot; captured during the
                Prerequisites step when omitted

        Returns:
            The FinalResult that was emitted last
        """
        self._snapshot = snapshot
        self._health = None
        self._warnings = []
        self._steps = [
            Step(name=category.value, ordinal=ordinal, category=category)
            for ordinal, category in enumerate(plan.categories, start=1)
        ]
        total = plan.total_steps
        logger.info("Starting bootstrap run with %d steps", total)

        with self._tracer.start_as_current_span("bootstrap.run") as run_span:
            run_span.set_attribute("bootstrap.total_steps", total)
            try:
                for step in self._steps:
                    self._execute(step, plan)
                    if step.status == StepStatus.FAILED:
                        result = self._failure_result(step)
                        run_span.set_status(Status(StatusCode.ERROR, step.error or "failed"))
                        self.emitter.emit_result(result)
                        return result

                    if (
                        step.category == Category.SERVICE_START
                        and step.status == StepStatus.COMPLETE
                        and plan.includes(Category.SERVICE_VERIFY)
                        and self.config.settle_seconds > 0
                    ):
                        logger.info("Waiting %ss for services to settle", self.config.settle_seconds)
                        self._sleep(self.config.settle_seconds)
            except Exception as e:
                logger.exception("Unexpected error during bootstrap run")
                result = self._unexpected_failure(e, traceback.format_exc())
                run_span.record_exception(e)
                run_span.set_status(Status(StatusCode.ERROR, str(e)))
                self.emitter.emit_result(result)
                return result

            result = self._success_result()
            self.emitter.emit_result(result)
            return result

    def _execute(self, step: Step, plan: InstallationPlan) -> None:
        total = plan.total_steps
        with self._tracer.start_as_current_span(f"bootstrap.step.{step.name}") as span:
            span.set_attribute("bootstrap.step.name", step.name)
            span.set_attribute("bootstrap.step.number", step.ordinal)

            skip_reason = self._skip_reason(step.category, plan)
            if skip_reason is not None:
                step.transition(StepStatus.SKIPPED, skip_reason)
                logger.info("Step %d/%d %s skipped: %s", step.ordinal, total, step.name, skip_reason)
                self.emitter.emit_step(step, total)
                span.set_attribute("bootstrap.step.status", step.status.value)
                return

            step.transition(StepStatus.RUNNING, _RUNNING_DETAILS[step.category])
            logger.info("Step %d/%d %s running", step.ordinal, total, step.name)
            self.emitter.emit_step(step, total)

            try:
                outcome = self._handlers[step.category](plan)
            except Exception as e:
                # Report the step as failed before the run loop builds the result
                step.transition(StepStatus.FAILED, str(e), str(e), FailureKind.UNEXPECTED)
                self.emitter.emit_step(step, total)
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            step.transition(outcome.status, outcome.details, outcome.error, outcome.error_kind)
            log = logger.error if outcome.status == StepStatus.FAILED else logger.info
            log("Step %d/%d %s %s: %s", step.ordinal, total, step.name, outcome.status.value, outcome.details)
            self.emitter.emit_step(step, total)

            span.set_attribute("bootstrap.step.status", step.status.value)
            if outcome.status == StepStatus.FAILED:
                span.set_status(Status(StatusCode.ERROR, outcome.error or "failed"))

    # ------------------------------------------------------------------
    # Skip decisions
    # ------------------------------------------------------------------

    def _skip_reason(self, category: Category, plan: InstallationPlan) -> Optional[str]:
        """Return why a step needs no work, or None if it must run."""
        snapshot = self._snapshot
        if category == Category.PREREQUISITES or snapshot is None:
            return None

        if category == Category.DOCKER and snapshot.docker.installed:
            return _already_installed("Docker", snapshot.docker)
        if category == Category.NODEJS and snapshot.nodejs.installed:
            return _already_installed("Node.js", snapshot.nodejs)
        if category == Category.RUST and snapshot.rust.installed and not self._extension_needed(plan):
            return _already_installed("Rust", snapshot.rust)
        if category.is_service and not plan.compose_file.exists():
            return f"Service manifest not found: {plan.compose_file}"
        return None

    def _extension_needed(self, plan: InstallationPlan) -> bool:
        return (
            plan.install_cli_extension
            and self.cli_extension_installer is not None
            and not (self._snapshot is not None and self._snapshot.cli_extension.installed)
        )

    def _pending_installs(self, plan: InstallationPlan) -> List[Category]:
        return [c for c in _INSTALL_CATEGORIES if plan.includes(c) and self._skip_reason(c, plan) is None]

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _run_prerequisites(self, plan: InstallationPlan) -> StepOutcome:
        if self._snapshot is None:
            self._snapshot = self.snapshot_provider.capture()
        snapshot = self._snapshot

        def describe(label: str, state) -> str:
            return f"{label} {state.version}" if state.installed else f"{label} missing"

        details = ", ".join([
            describe("docker", snapshot.docker),
            describe("node", snapshot.nodejs),
            describe("rust", snapshot.rust),
        ]) + f"; {snapshot.free_disk_gb:.1f} GB free"

        problems = []
        pending = self._pending_installs(plan)
        if pending and not snapshot.internet_available:
            names = ", ".join(c.value for c in pending)
            problems.append(f"Internet unreachable; downloads for {names} will likely fail")
        if snapshot.free_disk_gb < self.config.min_free_disk_gb:
            problems.append(
                f"Only {snapshot.free_disk_gb:.1f} GB free, {self.config.min_free_disk_gb:.0f} GB recommended"
            )

        if problems:
            message = "; ".join(problems)
            self._warnings.append(message)
            return StepOutcome.warning(details, message, FailureKind.INSTALLATION)
        return StepOutcome.complete(details)

    def _install(self, category: Category, plan: InstallationPlan) -> Optional[StepOutcome]:
        """Run the installer for a category; returns a failure outcome or None."""
        installer = self.installers.get(category)
        if installer is None:
            return StepOutcome.failed(f"No installer configured for {category.value}", FailureKind.CONFIGURATION)

        if not installer.install_complete(plan.temp_dir):
            return StepOutcome.failed(f"{category.value} installation failed", FailureKind.INSTALLATION)
        return None

    def _wait_for(self, predicate: Callable[[], bool], interval: float, timeout: float) -> bool:
        return poll_until(predicate, interval, timeout, clock=self._clock, sleep=self._sleep)

    def _run_docker(self, plan: InstallationPlan) -> StepOutcome:
        failure = self._install(Category.DOCKER, plan)
        if failure is not None:
            return failure

        timeout = self.config.docker_ready_timeout_s
        if not self._wait_for(self.readiness.docker_daemon_ready, self.config.docker_ready_interval_s, timeout):
            return StepOutcome.failed(
                f"Docker daemon did not become ready within {timeout:g}s", FailureKind.TIMEOUT
            )
        return StepOutcome.complete("Docker installed and daemon running")

    def _wait_for_toolchain(self, category: Category) -> Optional[StepOutcome]:
        binary = _TOOLCHAIN_BINARIES[category]
        timeout = self.config.toolchain_ready_timeout_s
        ready = self._wait_for(
            lambda: self.readiness.binary_available(binary),
            self.config.toolchain_ready_interval_s,
            timeout,
        )
        if not ready:
            return StepOutcome.failed(f"{binary} not available within {timeout:g}s after install", FailureKind.TIMEOUT)
        return None

    def _run_nodejs(self, plan: InstallationPlan) -> StepOutcome:
        failure = self._install(Category.NODEJS, plan) or self._wait_for_toolchain(Category.NODEJS)
        if failure is not None:
            return failure
        return StepOutcome.complete("Node.js installed")

    def _run_rust(self, plan: InstallationPlan) -> StepOutcome:
        details = []
        if self._snapshot is not None and self._snapshot.rust.installed:
            details.append(f"Rust {self._snapshot.rust.version} already installed")
        else:
            failure = self._install(Category.RUST, plan) or self._wait_for_toolchain(Category.RUST)
            if failure is not None:
                return failure
            details.append("Rust toolchain installed")

        if self._extension_needed(plan):
            extension = self.cli_extension_installer
            if extension.install_complete(plan.temp_dir):
                details.append(f"{extension.name} installed")
            else:
                message = f"{extension.name} installation failed (non-fatal)"
                logger.warning(message)
                self._warnings.append(message)
                details.append(message)

        return StepOutcome.complete("; ".join(details))

    def _run_service_pull(self, plan: InstallationPlan) -> StepOutcome:
        if self.service_manager.pull_images(plan.compose_file):
            return StepOutcome.complete("Service images pulled")

        message = "Image pull failed; images will be fetched on start"
        self._warnings.append(message)
        return StepOutcome.warning("Service images not pre-pulled", message, FailureKind.INSTALLATION)

    def _run_service_start(self, plan: InstallationPlan) -> StepOutcome:
        if self.service_manager.start_services(plan.compose_file, detached=True):
            return StepOutcome.complete("Services started")
        return StepOutcome.failed("Failed to start services", FailureKind.INSTALLATION)

    def _run_service_verify(self, plan: InstallationPlan) -> StepOutcome:
        health = self.health.check_all()
        self._health = health

        statuses = self.service_manager.list_service_statuses(plan.compose_file)
        running = sum(1 for s in statuses if s.state == "running")
        healthy = len(health.services) - len(health.unhealthy_services)
        details = f"{healthy}/{len(health.services)} services healthy; {running}/{len(statuses)} containers running"

        if health.all_healthy:
            return StepOutcome.complete(details)

        message = f"Unhealthy services: {', '.join(health.unhealthy_services)}"
        self._warnings.append(message)
        return StepOutcome.warning(details, message, FailureKind.HEALTH_CHECK)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _trace(self) -> List[StepTrace]:
        return [StepTrace.from_step(s) for s in self._steps if s.status != StepStatus.PENDING]

    def _trace_text(self) -> str:
        total = len(self._steps)
        lines = []
        for s in self._steps:
            if s.status == StepStatus.PENDING:
                continue
            line = f"Step {s.ordinal}/{total} {s.name}: {s.status.value}"
            if s.error:
                line += f" - {s.error}"
            lines.append(line)
        return "\n".join(lines)

    def _success_result(self) -> FinalResult:
        message = "Development environment ready"
        if self._warnings:
            message += f" with {len(self._warnings)} warning(s)"
        logger.info(message)
        return FinalResult(
            success=True,
            message=message,
            prerequisites=self._snapshot,
            service_health=self._health,
            warnings=list(self._warnings),
            steps=self._trace(),
        )

    def _failure_result(self, step: Step) -> FinalResult:
        return FinalResult(
            success=False,
            message=f"Installation failed at step {step.ordinal}/{len(self._steps)} ({step.name})",
            error=step.error,
            error_kind=step.error_kind,
            stack_trace=self._trace_text(),
            steps=self._trace(),
        )

    def _unexpected_failure(self, error: Exception, tb: str) -> FinalResult:
        return FinalResult(
            success=False,
            message="Installation aborted by an unexpected error",
            error=str(error) or type(error).__name__,
            error_kind=FailureKind.UNEXPECTED,
            stack_trace=f"{self._trace_text()}\n\n{tb}".strip(),
            steps=self._trace(),
        )
