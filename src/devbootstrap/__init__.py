"""
devbootstrap - Local developer environment bootstrapper.

Installs the container runtime, JavaScript runtime, Rust toolchain and an
optional cargo extension, then brings up the backing services defined in a
compose manifest and verifies they report healthy.

Progress is reported as a line-oriented JSON event stream on stdout so that
automation (CI, sandbox harnesses) can follow a run without scraping logs.

Example usage:
    from devbootstrap import Orchestrator, build_plan

    plan = build_plan(skip_docker=True)
    result = Orchestrator(...).run(plan)
"""

__version__ = "0.1.0"
__all__ = [
    "Orchestrator",
    "build_plan",
    "poll_until",
    "HealthAggregator",
    "TelemetryEmitter",
    "__version__",
]


# Lazy imports to avoid loading httpx/opentelemetry at import time
def __getattr__(name: str):
    if name == "Orchestrator":
        from devbootstrap.orchestrator import Orchestrator

        return Orchestrator
    if name == "build_plan":
        from devbootstrap.plan import build_plan

        return build_plan
    if name == "poll_until":
        from devbootstrap.readiness import poll_until

        return poll_until
    if name == "HealthAggregator":
        from devbootstrap.services.health import HealthAggregator

        return HealthAggregator
    if name == "TelemetryEmitter":
        from devbootstrap.telemetry import TelemetryEmitter

        return TelemetryEmitter
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
