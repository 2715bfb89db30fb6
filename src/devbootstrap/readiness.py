"""
Bounded-timeout readiness polling.

poll_until() is deliberately synchronous: the orchestrator wants to block
until a freshly installed daemon or toolchain is usable, and give up after
a hard deadline. Timing out is a normal outcome reported as False.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from devbootstrap.environment import EnvironmentView
from devbootstrap.process import CommandRunner

__all__ = ["poll_until", "ReadinessChecks"]

logger = logging.getLogger(__name__)

Predicate = Callable[[], bool]


def _evaluate(predicate: Predicate) -> bool:
    try:
        return bool(predicate())
    except Exception as e:  # resource may not exist yet
        logger.debug("Readiness predicate raised %s: %s", type(e).__name__, e)
        return False


def poll_until(
    predicate: Predicate,
    interval_seconds: float,
    timeout_seconds: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Evaluate predicate every interval_seconds until it succeeds or time runs out.

    Args:
        predicate: Zero-argument check; exceptions count as failure
        interval_seconds: Fixed delay between attempts (no backoff)
        timeout_seconds: Wall-clock budget measured from the first attempt
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests

    Returns:
        True as soon as predicate succeeds, False once the budget is spent
    """
    start = clock()
    attempts = 0
    while True:
        attempts += 1
        if _evaluate(predicate):
            logger.debug("Ready after %d attempt(s)", attempts)
            return True

        elapsed = clock() - start
        if elapsed >= timeout_seconds:
            logger.info("Gave up after %d attempt(s) in %.1fs", attempts, elapsed)
            return False

        sleep(min(interval_seconds, timeout_seconds - elapsed))


class ReadinessChecks:
    """Predicates used after installs; binaries resolve through the environment view."""

    def __init__(self, env: EnvironmentView, runner: Optional[CommandRunner] = None) -> None:
        self.env = env
        self.runner = runner or CommandRunner()

    def docker_daemon_ready(self) -> bool:
        docker = self.env.which("docker")
        if docker is None:
            return False
        return self.runner.run([docker, "info"], env=self.env.snapshot()).ok

    def binary_available(self, binary: str) -> bool:
        resolved = self.env.which(binary)
        if resolved is None:
            return False
        return self.runner.run([resolved, "--version"], env=self.env.snapshot()).ok
