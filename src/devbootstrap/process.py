"""Blocking subprocess execution with normalized outcomes."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from devbootstrap.timeouts import (
    EXIT_COMMAND_ERROR,
    EXIT_COMMAND_NOT_FOUND,
    EXIT_COMMAND_TIMEOUT,
    SUBPROCESS_DEFAULT_TIMEOUT_S,
)

__all__ = ["CommandResult", "CommandRunner"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished (or failed to start) command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def first_line(self) -> str:
        lines = self.stdout.strip().splitlines()
        return lines[0].strip() if lines else ""


class CommandRunner:
    """Runs commands synchronously; never raises for process-level faults."""

    def __init__(self, default_timeout: float = SUBPROCESS_DEFAULT_TIMEOUT_S) -> None:
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        """Run command and return its normalized result."""
        timeout = self.default_timeout if timeout is None else timeout
        logger.debug("Running: %s", " ".join(cmd))

        try:
            completed = subprocess.run(
                cmd,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except FileNotFoundError:
            logger.debug("Command not found: %s", cmd[0])
            return CommandResult(EXIT_COMMAND_NOT_FOUND, "", f"{cmd[0]}: command not found")
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", timeout, " ".join(cmd))
            return CommandResult(EXIT_COMMAND_TIMEOUT, "", f"Command timed out after {timeout}s")
        except OSError as e:
            logger.warning("Command execution error: %s", e)
            return CommandResult(EXIT_COMMAND_ERROR, "", str(e))

        if completed.returncode != 0:
            logger.debug("Command failed with exit code %s: %s", completed.returncode, completed.stderr.strip())
        return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")
