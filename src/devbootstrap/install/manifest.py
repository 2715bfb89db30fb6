"""
Versions manifest loading.

The manifest is a YAML document keyed by dependency name that pins each
installer artifact:

    docker:
      version: "4.34.3"
      url: https://desktop.docker.com/win/main/amd64/Docker%20Desktop%20Installer.exe
      install_args: [install, --quiet, --accept-license]
      bin_dir: C:/Program Files/Docker/Docker/resources/bin
      binary: docker
    nodejs: {...}
    rust: {...}
    cli_extension:
      name: cargo-watch
      version: "8.5.3"

It is read once at startup. A missing, unreadable or invalid manifest is a
ConfigurationError, distinct from any installation failure.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from devbootstrap.errors import ConfigurationError
from devbootstrap.models import Category

__all__ = ["DependencySpec", "CliExtensionSpec", "VersionsManifest", "load_manifest"]

logger = logging.getLogger(__name__)


class DependencySpec(BaseModel):
    """Pinned installer artifact for one dependency."""
    model_config = ConfigDict(extra="forbid")

    version: str
    url: str
    binary: str
    install_args: List[str] = Field(default_factory=list)
    bin_dir: Optional[str] = None
    filename: Optional[str] = None
    # Windows installers report "success, reboot required" as 3010
    success_exit_codes: List[int] = Field(default_factory=lambda: [0])

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"installer url must be http(s): {v}")
        return v

    @property
    def artifact_name(self) -> str:
        """File name used for the downloaded artifact."""
        if self.filename:
            return self.filename
        name = posixpath.basename(unquote(urlparse(self.url).path))
        return name or f"{self.binary}-installer"


class CliExtensionSpec(BaseModel):
    """Cargo-installed CLI extension."""
    model_config = ConfigDict(extra="forbid")

    name: str
    binary: Optional[str] = None
    version: Optional[str] = None

    @property
    def binary_name(self) -> str:
        return self.binary or self.name


class VersionsManifest(BaseModel):
    """Versions/URL manifest keyed by dependency name."""
    model_config = ConfigDict(extra="ignore")

    docker: Optional[DependencySpec] = None
    nodejs: Optional[DependencySpec] = None
    rust: Optional[DependencySpec] = None
    cli_extension: Optional[CliExtensionSpec] = None

    source: Optional[str] = Field(default=None, exclude=True)

    def spec_for(self, category: Category) -> DependencySpec:
        """
        Get the installer spec for an installable category.

        Raises:
            ConfigurationError: If the manifest has no entry for the category
        """
        key = {
            Category.DOCKER: "docker",
            Category.NODEJS: "nodejs",
            Category.RUST: "rust",
        }.get(category)
        if key is None:
            raise ConfigurationError(f"{category.value} is not an installable category")

        spec = getattr(self, key)
        if spec is None:
            raise ConfigurationError(f"Versions manifest has no '{key}' entry", path=self.source)
        return spec

    def validate_for(self, categories: List[Category], install_cli_extension: bool) -> None:
        """
        Check that every enabled installable category has an entry.

        Raises:
            ConfigurationError: On the first missing entry
        """
        for category in categories:
            if category in (Category.DOCKER, Category.NODEJS, Category.RUST):
                self.spec_for(category)
        if install_cli_extension and Category.RUST in categories and self.cli_extension is None:
            raise ConfigurationError("Versions manifest has no 'cli_extension' entry", path=self.source)


def load_manifest(path: str | Path) -> VersionsManifest:
    """
    Load and validate the versions manifest.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Versions manifest not found: {path}", path=str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read versions manifest {path}: {e}", path=str(path)) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Versions manifest {path} must be a mapping", path=str(path))

    try:
        manifest = VersionsManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid versions manifest {path}: {e}", path=str(path)) from e

    logger.debug("Loaded versions manifest from %s", path)
    return manifest.model_copy(update={"source": str(path)})
