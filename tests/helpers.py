"""
Fakes and builders shared by the devbootstrap tests.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Optional

from devbootstrap.config import DevBootstrapConfig
from devbootstrap.install.installers import DependencyInstaller
from devbootstrap.install.prerequisites import SnapshotProvider
from devbootstrap.models import (
    AggregateHealth,
    Category,
    DependencyState,
    PrerequisiteSnapshot,
    ServiceHealthRecord,
    ServiceStatus,
)
from devbootstrap.orchestrator import Orchestrator
from devbootstrap.services.compose import ServiceManager
from devbootstrap.telemetry import TelemetryEmitter, parse_line


# ============================================================================
# Fake Collaborators
# ============================================================================


class FakeInstaller(DependencyInstaller):
    """Installer that records calls and returns a fixed outcome."""

    def __init__(self, name: str, result: bool = True) -> None:
        self.name = name
        self.result = result
        self.calls: List[Path] = []

    def install_complete(self, temp_dir: Path) -> bool:
        self.calls.append(Path(temp_dir))
        return self.result


class RaisingInstaller(DependencyInstaller):
    name = "broken"

    def install_complete(self, temp_dir: Path) -> bool:
        raise RuntimeError("installer exploded")


class FakeServiceManager(ServiceManager):
    def __init__(
        self,
        pull_ok: bool = True,
        start_ok: bool = True,
        statuses: Optional[List[ServiceStatus]] = None,
    ) -> None:
        self.pull_ok = pull_ok
        self.start_ok = start_ok
        self.statuses = statuses if statuses is not None else [
            ServiceStatus(name="gateway", state="running", health="healthy", ports=["8080->8080/tcp"]),
            ServiceStatus(name="auth", state="running"),
        ]
        self.calls: List[str] = []

    def pull_images(self, manifest_path: Path) -> bool:
        self.calls.append("pull")
        return self.pull_ok

    def start_services(self, manifest_path: Path, detached: bool = True) -> bool:
        self.calls.append("start")
        return self.start_ok

    def list_service_statuses(self, manifest_path: Path) -> List[ServiceStatus]:
        self.calls.append("ps")
        return list(self.statuses)


class FakeHealth:
    def __init__(self, health: AggregateHealth) -> None:
        self.health = health
        self.calls = 0

    def check_all(self) -> AggregateHealth:
        self.calls += 1
        return self.health

    def close(self) -> None:
        pass


class FakeSnapshotProvider(SnapshotProvider):
    def __init__(self, snapshot: PrerequisiteSnapshot) -> None:
        self.snapshot = snapshot
        self.calls = 0

    def capture(self) -> PrerequisiteSnapshot:
        self.calls += 1
        return self.snapshot


class FakeReadiness:
    def __init__(self, docker_ready: bool = True, binaries_ready: bool = True) -> None:
        self.docker_ready = docker_ready
        self.binaries_ready = binaries_ready
        self.binary_checks: List[str] = []

    def docker_daemon_ready(self) -> bool:
        return self.docker_ready

    def binary_available(self, binary: str) -> bool:
        self.binary_checks.append(binary)
        return self.binaries_ready


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ============================================================================
# Model Fixtures
# ============================================================================


def make_snapshot(
    docker: bool = True,
    nodejs: bool = True,
    rust: bool = True,
    cli_extension: bool = True,
    internet: bool = True,
    free_disk_gb: float = 120.0,
) -> PrerequisiteSnapshot:
    def state(installed: bool, version: str) -> DependencyState:
        return DependencyState(installed=True, version=version) if installed else DependencyState()

    return PrerequisiteSnapshot(
        docker=state(docker, "27.3.1"),
        nodejs=state(nodejs, "20.18.0"),
        rust=state(rust, "1.82.0"),
        cli_extension=state(cli_extension, "8.5.3"),
        docker_daemon_running=docker,
        internet_available=internet,
        free_disk_gb=free_disk_gb,
        os_name="Windows",
        os_release="11",
        architecture="AMD64",
        python_version="3.12.4",
    )


def make_health(unhealthy: Optional[Dict[str, str]] = None) -> AggregateHealth:
    """Four-service verdict; `unhealthy` maps service name to error."""
    unhealthy = unhealthy or {}
    records = {}
    for name in ("gateway", "auth", "storage", "search"):
        url = f"http://localhost/{name}/health"
        if name in unhealthy:
            records[name] = ServiceHealthRecord(
                name=name, healthy=False, probe_url=url, status_code=0, error=unhealthy[name]
            )
        else:
            records[name] = ServiceHealthRecord(name=name, healthy=True, probe_url=url, status_code=200)
    return AggregateHealth(services=records)


def read_lines(stream: io.StringIO) -> List[tuple]:
    """Parse every protocol line written to a stream."""
    parsed = []
    for line in stream.getvalue().splitlines():
        item = parse_line(line)
        if item is not None:
            parsed.append(item)
    return parsed


def progress_events(stream: io.StringIO) -> List[dict]:
    return [payload for kind, payload in read_lines(stream) if kind == "progress"]


def final_result(stream: io.StringIO) -> dict:
    results = [payload for kind, payload in read_lines(stream) if kind == "result"]
    assert len(results) == 1
    return results[0]


class Harness:
    """Orchestrator wired to fakes, plus handles to inspect them."""

    def __init__(self, config: DevBootstrapConfig, snapshot: PrerequisiteSnapshot, **overrides) -> None:
        self.stream = io.StringIO()
        self.clock = FakeClock()
        self.installers = overrides.pop("installers", None) or {
            Category.DOCKER: FakeInstaller("Docker"),
            Category.NODEJS: FakeInstaller("Node.js"),
            Category.RUST: FakeInstaller("Rust"),
        }
        self.extension = overrides.pop("extension", FakeInstaller("cargo-watch"))
        self.services = overrides.pop("services", None) or FakeServiceManager()
        self.health = overrides.pop("health", None) or FakeHealth(make_health())
        self.readiness = overrides.pop("readiness", None) or FakeReadiness()
        self.snapshots = FakeSnapshotProvider(snapshot)
        self.orchestrator = Orchestrator(
            installers=self.installers,
            service_manager=self.services,
            health=self.health,
            snapshot_provider=self.snapshots,
            emitter=TelemetryEmitter(self.stream),
            readiness=self.readiness,
            cli_extension_installer=self.extension,
            config=config,
            sleep=self.clock.sleep,
            clock=self.clock,
            **overrides,
        )

    def events(self) -> List[dict]:
        return progress_events(self.stream)

    def result(self) -> dict:
        return final_result(self.stream)
