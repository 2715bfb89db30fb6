"""Compose-based service manager."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from devbootstrap.environment import EnvironmentView
from devbootstrap.models import ServiceStatus
from devbootstrap.process import CommandRunner
from devbootstrap.timeouts import SUBPROCESS_DEFAULT_TIMEOUT_S, SUBPROCESS_INSTALL_TIMEOUT_S

__all__ = ["ServiceManager", "ComposeServiceManager", "parse_ps_output"]

logger = logging.getLogger(__name__)


class ServiceManager(ABC):
    """Collaborator interface for bringing backing services up."""

    @abstractmethod
    def pull_images(self, manifest_path: Path) -> bool:
        ...

    @abstractmethod
    def start_services(self, manifest_path: Path, detached: bool = True) -> bool:
        ...

    @abstractmethod
    def list_service_statuses(self, manifest_path: Path) -> List[ServiceStatus]:
        ...


def _format_ports(entry: Dict[str, Any]) -> List[str]:
    publishers = entry.get("Publishers")
    if isinstance(publishers, list):
        ports = []
        for pub in publishers:
            published = pub.get("PublishedPort")
            target = pub.get("TargetPort")
            protocol = pub.get("Protocol", "tcp")
            if published:
                ports.append(f"{published}->{target}/{protocol}")
            elif target:
                ports.append(f"{target}/{protocol}")
        return ports

    raw = entry.get("Ports")
    if isinstance(raw, str) and raw:
        return [p.strip() for p in raw.split(",") if p.strip()]
    return []


def parse_ps_output(output: str) -> List[ServiceStatus]:
    """
    Parse `docker compose ps --format json` output.

    Older compose releases print a single JSON array, newer ones print one
    JSON object per line; both are accepted.
    """
    output = output.strip()
    if not output:
        return []

    entries: List[Dict[str, Any]] = []
    if output.startswith("["):
        entries = json.loads(output)
    else:
        for line in output.splitlines():
            line = line.strip()
            if line:
                entries.append(json.loads(line))

    statuses = []
    for entry in entries:
        statuses.append(
            ServiceStatus(
                name=entry.get("Service") or entry.get("Name") or "unknown",
                state=(entry.get("State") or "unknown").lower(),
                health=(entry.get("Health") or None),
                ports=_format_ports(entry),
            )
        )
    return statuses


class ComposeServiceManager(ServiceManager):
    """Drives `docker compose` against an externally authored manifest."""

    def __init__(
        self,
        env: EnvironmentView,
        runner: Optional[CommandRunner] = None,
        compose_command: Optional[List[str]] = None,
        timeout: float = SUBPROCESS_INSTALL_TIMEOUT_S,
    ) -> None:
        self.env = env
        self.runner = runner or CommandRunner()
        self.compose_command = compose_command or ["docker", "compose"]
        self.timeout = timeout

    def _compose(self, manifest_path: Path, *args: str, timeout: Optional[float] = None):
        cmd = [*self.compose_command, "-f", str(manifest_path), *args]
        return self.runner.run(
            cmd,
            env=self.env.snapshot(),
            timeout=self.timeout if timeout is None else timeout,
            cwd=Path(manifest_path).parent,
        )

    def pull_images(self, manifest_path: Path) -> bool:
        result = self._compose(manifest_path, "pull")
        if not result.ok:
            logger.warning("Image pull failed: %s", result.stderr.strip())
        return result.ok

    def start_services(self, manifest_path: Path, detached: bool = True) -> bool:
        args = ["up", "-d"] if detached else ["up"]
        result = self._compose(manifest_path, *args)
        if not result.ok:
            logger.error("Failed to start services: %s", result.stderr.strip())
        return result.ok

    def list_service_statuses(self, manifest_path: Path) -> List[ServiceStatus]:
        result = self._compose(manifest_path, "ps", "--all", "--format", "json", timeout=SUBPROCESS_DEFAULT_TIMEOUT_S)
        if not result.ok:
            logger.warning("Could not list services: %s", result.stderr.strip())
            return []
        try:
            return parse_ps_output(result.stdout)
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning("Unparseable compose ps output: %s", e)
            return []
