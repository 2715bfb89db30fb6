"""
Environment view shared between installers and readiness checks.

A freshly installed toolchain must become visible to the current process
without a restart. Rather than mutating os.environ from deep inside each
installer, the orchestrator hands every collaborator the same
EnvironmentView; installers append to its PATH and readiness checks resolve
binaries through it.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Dict, List, MutableMapping, Optional

__all__ = ["EnvironmentView"]

logger = logging.getLogger(__name__)


class EnvironmentView:
    """PATH-bearing view over an environment mapping.

    Args:
        environ: Backing mapping. Defaults to os.environ so subprocesses
            spawned without an explicit env also see PATH updates.
    """

    def __init__(self, environ: Optional[MutableMapping[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

    @property
    def path(self) -> str:
        return self._environ.get("PATH", "")

    def path_entries(self) -> List[str]:
        return [entry for entry in self.path.split(os.pathsep) if entry]

    def add_to_path(self, directory: str) -> bool:
        """
        Append a directory to PATH if it is not already present.

        Returns:
            True if PATH changed, False if the entry was already there
        """
        directory = os.path.expanduser(os.path.expandvars(directory))
        entries = self.path_entries()
        normalized = os.path.normcase(os.path.normpath(directory))
        if any(os.path.normcase(os.path.normpath(e)) == normalized for e in entries):
            return False

        entries.append(directory)
        self._environ["PATH"] = os.pathsep.join(entries)
        logger.info("Added %s to PATH", directory)
        return True

    def which(self, binary: str) -> Optional[str]:
        return shutil.which(binary, path=self.path or None)

    def snapshot(self) -> Dict[str, str]:
        """Copy of the environment for passing to subprocesses."""
        return dict(self._environ)
