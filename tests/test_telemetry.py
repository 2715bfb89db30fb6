"""Tests for the progress event protocol."""

import io
import json

import pytest

from helpers import make_health, make_snapshot
from devbootstrap.errors import FailureKind
from devbootstrap.models import Category, FinalResult, Step, StepStatus
from devbootstrap.telemetry import TelemetryEmitter, parse_line


def _running_step(ordinal=3):
    step = Step(name="Rust", ordinal=ordinal, category=Category.RUST)
    step.transition(StepStatus.RUNNING, "Installing Rust toolchain")
    return step


class TestProgressLines:
    def test_progress_line_format(self):
        stream = io.StringIO()
        TelemetryEmitter(stream).emit_step(_running_step(), total_steps=5)

        line = stream.getvalue()
        assert line.startswith("PROGRESS: ")
        assert line.endswith("\n")
        payload = json.loads(line[len("PROGRESS: "):])
        assert set(payload) == {
            "step", "step_number", "total_steps", "percent_complete",
            "status", "details", "error", "timestamp",
        }
        assert payload["step"] == "Rust"
        assert payload["step_number"] == 3
        assert payload["percent_complete"] == 60.0
        assert payload["status"] == "Running"
        assert payload["error"] is None

    def test_percent_is_rounded(self):
        stream = io.StringIO()
        TelemetryEmitter(stream).emit_step(_running_step(ordinal=1), total_steps=3)
        _, payload = parse_line(stream.getvalue())
        assert payload["percent_complete"] == 33.33

    def test_order_is_call_order(self):
        stream = io.StringIO()
        emitter = TelemetryEmitter(stream)
        step = _running_step()
        emitter.emit_step(step, 5)
        step.transition(StepStatus.WARNING, "done", "extension failed", FailureKind.INSTALLATION)
        emitter.emit_step(step, 5)

        statuses = [parse_line(l)[1]["status"] for l in stream.getvalue().splitlines()]
        assert statuses == ["Running", "Warning"]
        assert [e.status for e in emitter.events] == [StepStatus.RUNNING, StepStatus.WARNING]


class TestResultLine:
    def test_success_payload_keys(self):
        stream = io.StringIO()
        result = FinalResult(
            success=True,
            message="Development environment ready",
            prerequisites=make_snapshot(),
            service_health=make_health(),
        )
        TelemetryEmitter(stream).emit_result(result)

        kind, payload = parse_line(stream.getvalue())
        assert kind == "result"
        assert set(payload) == {"success", "message", "prerequisites", "service_health", "warnings", "steps"}
        assert payload["service_health"]["all_healthy"] is True

    def test_failure_payload_keys(self):
        stream = io.StringIO()
        result = FinalResult(
            success=False,
            message="Installation failed",
            error="boom",
            error_kind=FailureKind.INSTALLATION,
            stack_trace="Step 1/1 Prerequisites: Failed - boom",
        )
        TelemetryEmitter(stream).emit_result(result)

        _, payload = parse_line(stream.getvalue())
        assert set(payload) == {"success", "message", "error", "error_kind", "stack_trace", "steps"}
        assert payload["error_kind"] == "InstallationFailure"

    def test_only_one_result(self):
        emitter = TelemetryEmitter(io.StringIO())
        emitter.emit_result(FinalResult(success=True, message="ok"))
        with pytest.raises(RuntimeError):
            emitter.emit_result(FinalResult(success=True, message="again"))

    def test_no_progress_after_result(self):
        emitter = TelemetryEmitter(io.StringIO())
        emitter.emit_result(FinalResult(success=True, message="ok"))
        with pytest.raises(RuntimeError):
            emitter.emit_step(_running_step(), 5)


class TestParseLine:
    def test_ignores_foreign_lines(self):
        assert parse_line("Downloading rustup-init.exe...") is None
        assert parse_line("") is None

    def test_strips_newline(self):
        kind, payload = parse_line('RESULT: {"success": true}\r\n')
        assert kind == "result"
        assert payload == {"success": True}
