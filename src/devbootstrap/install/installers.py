"""
Dependency installers.

Each installer performs download -> silent install -> exit code check ->
PATH update -> cleanup and reports a plain boolean. Network errors, missing
executables and non-zero exit codes are logged here and never raised; the
orchestrator decides whether a False is fatal.
"""

from __future__ import annotations

import logging
import os
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import httpx

from devbootstrap.environment import EnvironmentView
from devbootstrap.install.manifest import CliExtensionSpec, DependencySpec
from devbootstrap.process import CommandRunner
from devbootstrap.timeouts import DOWNLOAD_TIMEOUT_S, SUBPROCESS_INSTALL_TIMEOUT_S

__all__ = ["DependencyInstaller", "ArtifactInstaller", "CliExtensionInstaller"]

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 256


class DependencyInstaller(ABC):
    """Collaborator interface used by the orchestrator."""

    name: str = "dependency"

    @abstractmethod
    def install_complete(self, temp_dir: Path) -> bool:
        """Install the dependency end to end. Returns True on success."""


class ArtifactInstaller(DependencyInstaller):
    """
    Installs a dependency from a downloaded installer artifact.

    Args:
        name: Display name used in logs
        spec: Manifest entry pinning the artifact
        env: Environment view that receives the PATH update
        runner: Subprocess runner
        client: httpx client used for the download (injectable for tests)
        timeout: Timeout for the installer process
    """

    def __init__(
        self,
        name: str,
        spec: DependencySpec,
        env: EnvironmentView,
        runner: Optional[CommandRunner] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = SUBPROCESS_INSTALL_TIMEOUT_S,
    ) -> None:
        self.name = name
        self.spec = spec
        self.env = env
        self.runner = runner or CommandRunner()
        self._client = client
        self.timeout = timeout

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=DOWNLOAD_TIMEOUT_S, follow_redirects=True)
        return self._client

    def install_complete(self, temp_dir: Path) -> bool:
        temp_dir = Path(temp_dir)
        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create temp dir %s: %s", temp_dir, e)
            return False

        artifact = temp_dir / self.spec.artifact_name
        logger.info("Installing %s %s", self.name, self.spec.version)
        try:
            if not self.download(artifact):
                return False

            cmd = self.install_command(artifact)
            if cmd is None:
                return False
            result = self.runner.run(cmd, env=self.env.snapshot(), timeout=self.timeout)
            if result.returncode not in self.spec.success_exit_codes:
                logger.error(
                    "%s installer exited with %s: %s",
                    self.name,
                    result.returncode,
                    result.stderr.strip() or result.stdout.strip(),
                )
                return False

            if self.spec.bin_dir:
                self.env.add_to_path(self.spec.bin_dir)
            logger.info("%s %s installed", self.name, self.spec.version)
            return True
        finally:
            self.cleanup(artifact)

    def download(self, destination: Path) -> bool:
        """Stream the artifact to disk."""
        logger.info("Downloading %s", self.spec.url)
        try:
            with self._get_client().stream("GET", self.spec.url) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_bytes(_CHUNK_SIZE):
                        f.write(chunk)
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error("Download of %s failed: %s", self.name, e)
            return False
        except OSError as e:
            logger.error("Cannot write %s: %s", destination, e)
            return False
        return True

    def install_command(self, artifact: Path) -> Optional[List[str]]:
        """Build the silent-install command for the artifact type; None if it cannot be made executable."""
        args = list(self.spec.install_args)
        suffix = artifact.suffix.lower()
        if suffix == ".msi":
            return ["msiexec", "/i", str(artifact), *args]
        if suffix == ".sh":
            return ["sh", str(artifact), *args]

        if os.name != "nt":
            try:
                mode = artifact.stat().st_mode
                artifact.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            except OSError as e:
                logger.error("Cannot make %s executable: %s", artifact, e)
                return None
        return [str(artifact), *args]

    def cleanup(self, artifact: Path) -> None:
        try:
            artifact.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", artifact, e)


class CliExtensionInstaller(DependencyInstaller):
    """Installs a cargo CLI extension with `cargo install`."""

    def __init__(
        self,
        spec: CliExtensionSpec,
        env: EnvironmentView,
        runner: Optional[CommandRunner] = None,
        timeout: float = SUBPROCESS_INSTALL_TIMEOUT_S,
    ) -> None:
        self.name = spec.name
        self.spec = spec
        self.env = env
        self.runner = runner or CommandRunner()
        self.timeout = timeout

    def install_complete(self, temp_dir: Path) -> bool:
        cargo = self.env.which("cargo")
        if cargo is None:
            logger.warning("cargo not found on PATH, cannot install %s", self.spec.name)
            return False

        cmd = [cargo, "install", self.spec.name]
        if self.spec.version:
            cmd += ["--version", self.spec.version]

        result = self.runner.run(cmd, env=self.env.snapshot(), timeout=self.timeout)
        if not result.ok:
            logger.warning("cargo install %s failed: %s", self.spec.name, result.stderr.strip())
            return False
        return True
