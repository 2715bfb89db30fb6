"""Prerequisite snapshot capture."""

from __future__ import annotations

import logging
import platform
import re
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx

from devbootstrap.environment import EnvironmentView
from devbootstrap.install.manifest import CliExtensionSpec
from devbootstrap.models import DependencyState, PrerequisiteSnapshot
from devbootstrap.process import CommandRunner
from devbootstrap.timeouts import INTERNET_CHECK_TIMEOUT_S

__all__ = ["SnapshotProvider", "SystemSnapshotProvider", "parse_version"]

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?)")
_BYTES_PER_GB = 1024 ** 3


def parse_version(output: str) -> Optional[str]:
    """Pull the first dotted version number out of `--version` output."""
    match = _VERSION_RE.search(output)
    return match.group(1) if match else None


class SnapshotProvider(ABC):
    """Collaborator that reads system facts once per run."""

    @abstractmethod
    def capture(self) -> PrerequisiteSnapshot:
        ...


class SystemSnapshotProvider(SnapshotProvider):
    """Reads dependency versions, connectivity, disk and OS facts from the host."""

    def __init__(
        self,
        env: EnvironmentView,
        temp_dir: Path,
        runner: Optional[CommandRunner] = None,
        internet_check_url: str = "https://www.google.com",
        cli_extension: Optional[CliExtensionSpec] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.env = env
        self.temp_dir = Path(temp_dir)
        self.runner = runner or CommandRunner()
        self.internet_check_url = internet_check_url
        self.cli_extension = cli_extension
        self._client = client

    def capture(self) -> PrerequisiteSnapshot:
        rustc = self.dependency_state("rustc")
        cargo = self.dependency_state("cargo")
        rust = rustc if (rustc.installed and cargo.installed) else DependencyState()

        extension = DependencyState()
        if self.cli_extension is not None:
            extension = self.dependency_state(self.cli_extension.binary_name)

        docker = self.dependency_state("docker")
        snapshot = PrerequisiteSnapshot(
            docker=docker,
            nodejs=self.dependency_state("node"),
            rust=rust,
            cli_extension=extension,
            docker_daemon_running=docker.installed and self.docker_daemon_running(),
            internet_available=self.internet_available(),
            free_disk_gb=self.free_disk_gb(),
            os_name=platform.system(),
            os_release=platform.release(),
            architecture=platform.machine(),
            python_version=platform.python_version(),
        )
        logger.info(
            "Prerequisites: docker=%s node=%s rust=%s internet=%s disk=%.1fGB",
            snapshot.docker.version,
            snapshot.nodejs.version,
            snapshot.rust.version,
            snapshot.internet_available,
            snapshot.free_disk_gb,
        )
        return snapshot

    def dependency_state(self, binary: str) -> DependencyState:
        resolved = self.env.which(binary)
        if resolved is None:
            return DependencyState()

        result = self.runner.run([resolved, "--version"], env=self.env.snapshot())
        if not result.ok:
            logger.debug("%s present but `--version` failed", binary)
            return DependencyState()
        return DependencyState(installed=True, version=parse_version(result.first_line) or result.first_line)

    def docker_daemon_running(self) -> bool:
        docker = self.env.which("docker")
        if docker is None:
            return False
        return self.runner.run([docker, "info"], env=self.env.snapshot()).ok

    def internet_available(self) -> bool:
        try:
            if self._client is not None:
                self._client.head(self.internet_check_url, timeout=INTERNET_CHECK_TIMEOUT_S)
            else:
                httpx.head(self.internet_check_url, timeout=INTERNET_CHECK_TIMEOUT_S)
        except httpx.RequestError as e:
            logger.debug("Internet check failed: %s", e)
            return False
        return True

    def free_disk_gb(self) -> float:
        probe = self.temp_dir
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent
        try:
            usage = shutil.disk_usage(probe)
        except OSError as e:
            logger.warning("Cannot read disk usage for %s: %s", probe, e)
            return 0.0
        return round(usage.free / _BYTES_PER_GB, 2)
