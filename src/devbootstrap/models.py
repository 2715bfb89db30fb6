"""
Data model for bootstrap runs.

Steps are mutable dataclasses owned by the orchestrator for the duration
of a run. Everything that leaves the process (snapshot, health, progress
events, final result) is a pydantic model so it serializes to the wire
format directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from devbootstrap.errors import FailureKind

__all__ = [
    "Category",
    "StepStatus",
    "Step",
    "DependencyState",
    "PrerequisiteSnapshot",
    "ServiceHealthRecord",
    "AggregateHealth",
    "ServiceStatus",
    "StepTrace",
    "ProgressEvent",
    "FinalResult",
    "utc_now_iso",
]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Category(str, Enum):
    """Orchestration categories in their fixed execution order."""
    PREREQUISITES = "Prerequisites"
    DOCKER = "Docker"
    NODEJS = "NodeJs"
    RUST = "Rust"
    SERVICE_PULL = "ServicePull"
    SERVICE_START = "ServiceStart"
    SERVICE_VERIFY = "ServiceVerify"

    @classmethod
    def ordered(cls) -> List["Category"]:
        return list(cls)

    @property
    def is_service(self) -> bool:
        return self in (Category.SERVICE_PULL, Category.SERVICE_START, Category.SERVICE_VERIFY)


class StepStatus(str, Enum):
    """Status values for orchestration steps."""
    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETE = "Complete"
    SKIPPED = "Skipped"
    FAILED = "Failed"
    WARNING = "Warning"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETE, StepStatus.SKIPPED, StepStatus.FAILED, StepStatus.WARNING)

    @property
    def carries_error(self) -> bool:
        return self in (StepStatus.FAILED, StepStatus.WARNING)


_ALLOWED_TRANSITIONS = {
    StepStatus.PENDING: {StepStatus.RUNNING, StepStatus.SKIPPED},
    StepStatus.RUNNING: {StepStatus.COMPLETE, StepStatus.SKIPPED, StepStatus.FAILED, StepStatus.WARNING},
}


@dataclass
class Step:
    """A single unit of orchestration within one run."""
    name: str
    ordinal: int
    category: Category
    status: StepStatus = StepStatus.PENDING
    details: str = ""
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None

    def transition(
        self,
        status: StepStatus,
        details: str = "",
        error: Optional[str] = None,
        error_kind: Optional[FailureKind] = None,
    ) -> None:
        """
        Advance the step to a new status.

        Raises:
            ValueError: If the transition is not allowed (e.g. revisiting a
                terminal status)
        """
        allowed = _ALLOWED_TRANSITIONS.get(self.status, set())
        if status not in allowed:
            raise ValueError(f"Step {self.name}: cannot move from {self.status.value} to {status.value}")

        self.status = status
        self.details = details
        if status.carries_error:
            self.error = error
            self.error_kind = error_kind
        else:
            self.error = None
            self.error_kind = None


class DependencyState(BaseModel):
    """Presence and version of one installable dependency."""
    model_config = ConfigDict(frozen=True)

    installed: bool = False
    version: Optional[str] = None


class PrerequisiteSnapshot(BaseModel):
    """Point-in-time fact sheet captured once at the start of a run."""
    model_config = ConfigDict(frozen=True)

    docker: DependencyState = Field(default_factory=DependencyState)
    nodejs: DependencyState = Field(default_factory=DependencyState)
    rust: DependencyState = Field(default_factory=DependencyState)
    cli_extension: DependencyState = Field(default_factory=DependencyState)
    docker_daemon_running: bool = False
    internet_available: bool = False
    free_disk_gb: float = 0.0
    os_name: str = ""
    os_release: str = ""
    architecture: str = ""
    python_version: str = ""
    captured_at: str = Field(default_factory=utc_now_iso)


class ServiceHealthRecord(BaseModel):
    """Health probe result for one backing service."""
    model_config = ConfigDict(frozen=True)

    name: str
    healthy: bool
    probe_url: str
    status_code: int = 0
    error: Optional[str] = None
    response_time_ms: Optional[int] = None


class AggregateHealth(BaseModel):
    """Combined verdict over the named service health records."""
    model_config = ConfigDict(frozen=True)

    services: Dict[str, ServiceHealthRecord]
    checked_at: str = Field(default_factory=utc_now_iso)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_healthy(self) -> bool:
        return bool(self.services) and all(r.healthy for r in self.services.values())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def unhealthy_services(self) -> List[str]:
        return [name for name, record in self.services.items() if not record.healthy]


class ServiceStatus(BaseModel):
    """Container state as reported by the service manager."""
    name: str
    state: str = "unknown"
    health: Optional[str] = None
    ports: List[str] = Field(default_factory=list)


class StepTrace(BaseModel):
    """Compact record of a step's final state, used in the result trace."""
    step: str
    step_number: int
    status: StepStatus
    error: Optional[str] = None

    @classmethod
    def from_step(cls, step: Step) -> "StepTrace":
        return cls(step=step.name, step_number=step.ordinal, status=step.status, error=step.error)


class ProgressEvent(BaseModel):
    """One line of the progress protocol."""
    step: str
    step_number: int
    total_steps: int
    percent_complete: float
    status: StepStatus
    details: str = ""
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now_iso)

    @classmethod
    def from_step(cls, step: Step, total_steps: int) -> "ProgressEvent":
        return cls(
            step=step.name,
            step_number=step.ordinal,
            total_steps=total_steps,
            percent_complete=round(step.ordinal / total_steps * 100, 2),
            status=step.status,
            details=step.details,
            error=step.error,
        )


class FinalResult(BaseModel):
    """Terminal outcome of a run."""
    success: bool
    message: str
    prerequisites: Optional[PrerequisiteSnapshot] = None
    service_health: Optional[AggregateHealth] = None
    warnings: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None
    stack_trace: Optional[str] = None
    steps: List[StepTrace] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation; success and failure carry different keys."""
        data = self.model_dump(mode="json")
        if self.success:
            keys = ("success", "message", "prerequisites", "service_health", "warnings", "steps")
        else:
            keys = ("success", "message", "error", "error_kind", "stack_trace", "steps")
        return {key: data[key] for key in keys}
