"""Tests for the bounded-timeout readiness poller."""

import time

from helpers import FakeClock
from devbootstrap.environment import EnvironmentView
from devbootstrap.process import CommandResult
from devbootstrap.readiness import ReadinessChecks, poll_until


class TestPollUntil:
    def test_returns_true_immediately_on_success(self):
        clock = FakeClock()
        assert poll_until(lambda: True, 5, 300, clock=clock, sleep=clock.sleep) is True
        assert clock.sleeps == []

    def test_succeeds_after_some_attempts(self):
        clock = FakeClock()
        attempts = iter([False, False, True])

        assert poll_until(lambda: next(attempts), 2, 60, clock=clock, sleep=clock.sleep) is True
        assert clock.sleeps == [2, 2]

    def test_times_out_without_raising(self):
        clock = FakeClock()
        assert poll_until(lambda: False, 2, 60, clock=clock, sleep=clock.sleep) is False
        assert clock.now == 60
        assert len(clock.sleeps) == 30

    def test_exception_counts_as_failure(self):
        clock = FakeClock()
        calls = []

        def predicate():
            calls.append(1)
            if len(calls) < 3:
                raise FileNotFoundError("docker")
            return True

        assert poll_until(predicate, 1, 10, clock=clock, sleep=clock.sleep) is True
        assert len(calls) == 3

    def test_never_sleeps_past_deadline(self):
        clock = FakeClock()
        poll_until(lambda: False, 4, 10, clock=clock, sleep=clock.sleep)
        assert clock.sleeps == [4, 4, 2]

    def test_real_timeout_bounds(self):
        start = time.monotonic()
        result = poll_until(lambda: False, interval_seconds=1, timeout_seconds=3)
        elapsed = time.monotonic() - start

        assert result is False
        assert 3.0 <= elapsed <= 4.0


class StubRunner:
    def __init__(self, returncode=0):
        self.returncode = returncode
        self.commands = []

    def run(self, cmd, env=None, timeout=None, cwd=None):
        self.commands.append(cmd)
        return CommandResult(self.returncode, "ok\n")


def _env_with(tmp_path, *binaries):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for name in binaries:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n")
        path.chmod(0o755)
    return EnvironmentView({"PATH": str(bin_dir)})


class TestReadinessChecks:
    def test_missing_binary_not_available(self, tmp_path):
        runner = StubRunner()
        checks = ReadinessChecks(_env_with(tmp_path), runner=runner)

        assert checks.binary_available("cargo") is False
        assert runner.commands == []

    def test_binary_available_runs_version(self, tmp_path):
        runner = StubRunner()
        checks = ReadinessChecks(_env_with(tmp_path, "cargo"), runner=runner)

        assert checks.binary_available("cargo") is True
        assert runner.commands[0][1] == "--version"

    def test_docker_daemon_not_ready(self, tmp_path):
        checks = ReadinessChecks(_env_with(tmp_path, "docker"), runner=StubRunner(returncode=1))
        assert checks.docker_daemon_ready() is False
