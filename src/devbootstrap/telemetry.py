"""
Progress event protocol writer.

Each step transition and the final outcome are written to stdout as one
line each, prefixed so consumers can tell them apart from anything else a
child process may print:

    PROGRESS: {"step": "Docker", "step_number": 2, ...}
    RESULT: {"success": true, ...}

Lines are flushed as soon as they are written; emission order is call order.
"""

from __future__ import annotations

import json
import logging
from typing import IO, Any, Dict, List, Optional, Tuple

import click

from devbootstrap.models import FinalResult, ProgressEvent, Step

__all__ = ["TelemetryEmitter", "parse_line", "PROGRESS_PREFIX", "RESULT_PREFIX"]

logger = logging.getLogger(__name__)

PROGRESS_PREFIX = "PROGRESS: "
RESULT_PREFIX = "RESULT: "


class TelemetryEmitter:
    """Writes progress events and the final result to a text stream."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream
        self._result_emitted = False
        self.events: List[ProgressEvent] = []

    @property
    def result_emitted(self) -> bool:
        return self._result_emitted

    def _write(self, prefix: str, payload: Dict[str, Any]) -> None:
        line = prefix + json.dumps(payload, default=str)
        click.echo(line, file=self._stream)

    def emit_step(self, step: Step, total_steps: int) -> ProgressEvent:
        """Emit the current state of a step."""
        if self._result_emitted:
            raise RuntimeError("Cannot emit progress after the final result")

        event = ProgressEvent.from_step(step, total_steps)
        self.events.append(event)
        self._write(PROGRESS_PREFIX, event.model_dump(mode="json"))
        logger.debug("Emitted %s %s (%s/%s)", event.step, event.status.value, event.step_number, total_steps)
        return event

    def emit_result(self, result: FinalResult) -> None:
        """Emit the final result. Only one result may be emitted per run."""
        if self._result_emitted:
            raise RuntimeError("Final result already emitted")

        self._result_emitted = True
        self._write(RESULT_PREFIX, result.to_payload())


def parse_line(line: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """
    Parse one line of emitter output.

    Returns:
        ("progress", payload) or ("result", payload), or None for lines that
        are not part of the protocol
    """
    line = line.rstrip("\r\n")
    if line.startswith(PROGRESS_PREFIX):
        return "progress", json.loads(line[len(PROGRESS_PREFIX):])
    if line.startswith(RESULT_PREFIX):
        return "result", json.loads(line[len(RESULT_PREFIX):])
    return None
