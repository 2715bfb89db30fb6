"""
Timeout and polling constants for devbootstrap.

Centralizes timeout values to ensure consistency across the codebase
and make tuning easier.
"""

from __future__ import annotations

# =============================================================================
# Readiness Polling
# =============================================================================

# Docker daemon start-up after a fresh install can take several minutes
DOCKER_READY_INTERVAL_S = 5.0
DOCKER_READY_TIMEOUT_S = 300.0

# Toolchain binary availability (node, cargo) after install
TOOLCHAIN_READY_INTERVAL_S = 2.0
TOOLCHAIN_READY_TIMEOUT_S = 60.0

# =============================================================================
# Service Bring-up
# =============================================================================

# Delay between starting services and probing their health endpoints
SERVICE_SETTLE_DELAY_S = 10.0

# Per-request timeout for service health probes
HTTP_HEALTH_CHECK_TIMEOUT_S = 10.0

# =============================================================================
# Subprocess / Network
# =============================================================================

# Default timeout for short commands (version probes, docker info)
SUBPROCESS_DEFAULT_TIMEOUT_S = 30

# Silent installers and compose pulls can legitimately run for a long time
SUBPROCESS_INSTALL_TIMEOUT_S = 1800

# Timeout for the internet reachability probe
INTERNET_CHECK_TIMEOUT_S = 5.0

# Timeout for artifact downloads (connect/read per chunk, not whole transfer)
DOWNLOAD_TIMEOUT_S = 60.0

# =============================================================================
# Exit codes used when normalizing subprocess failures
# =============================================================================

EXIT_COMMAND_NOT_FOUND = 127
EXIT_COMMAND_TIMEOUT = 124
EXIT_COMMAND_ERROR = 1
