"""Backing service collaborators: compose manager and health aggregation."""

from devbootstrap.services.compose import ComposeServiceManager, ServiceManager, parse_ps_output
from devbootstrap.services.health import HealthAggregator

__all__ = ["ComposeServiceManager", "ServiceManager", "parse_ps_output", "HealthAggregator"]
