"""Dependency installation collaborators: manifest, installers, prerequisite snapshot."""

from devbootstrap.install.installers import (
    ArtifactInstaller,
    CliExtensionInstaller,
    DependencyInstaller,
)
from devbootstrap.install.manifest import (
    CliExtensionSpec,
    DependencySpec,
    VersionsManifest,
    load_manifest,
)
from devbootstrap.install.prerequisites import SnapshotProvider, SystemSnapshotProvider

__all__ = [
    "ArtifactInstaller",
    "CliExtensionInstaller",
    "DependencyInstaller",
    "CliExtensionSpec",
    "DependencySpec",
    "VersionsManifest",
    "load_manifest",
    "SnapshotProvider",
    "SystemSnapshotProvider",
]
