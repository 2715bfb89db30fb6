"""Installation plan construction."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from devbootstrap.config import DevBootstrapConfig, get_config
from devbootstrap.models import Category

__all__ = ["InstallationPlan", "build_plan"]

_SERVICE_CATEGORIES = (Category.SERVICE_PULL, Category.SERVICE_START, Category.SERVICE_VERIFY)


@dataclass(frozen=True)
class InstallationPlan:
    """Ordered, fixed set of categories for one run.

    Categories whose dependency turns out to be present still run as a
    cheap Skipped step, so total_steps never changes once the plan exists.
    """
    categories: Tuple[Category, ...]
    temp_dir: Path
    compose_file: Path
    install_cli_extension: bool = True

    def __post_init__(self) -> None:
        if not self.categories or self.categories[0] != Category.PREREQUISITES:
            raise ValueError("A plan always starts with the Prerequisites step")
        order = Category.ordered()
        indexes = [order.index(c) for c in self.categories]
        if indexes != sorted(set(indexes)):
            raise ValueError("Plan categories must be unique and in execution order")

    @property
    def total_steps(self) -> int:
        return len(self.categories)

    def includes(self, category: Category) -> bool:
        return category in self.categories


def build_plan(
    skip_docker: bool = False,
    skip_nodejs: bool = False,
    skip_rust: bool = False,
    skip_cli_extension: bool = False,
    skip_services: bool = False,
    temp_dir: Optional[Path] = None,
    compose_file: Optional[Path] = None,
    config: Optional[DevBootstrapConfig] = None,
) -> InstallationPlan:
    """
    Build the plan from skip flags.

    Skipping services removes the pull, start and verify categories
    together. Skipping the CLI extension keeps the Rust step.
    """
    config = config or get_config()

    disabled = set()
    if skip_docker:
        disabled.add(Category.DOCKER)
    if skip_nodejs:
        disabled.add(Category.NODEJS)
    if skip_rust:
        disabled.add(Category.RUST)
    if skip_services:
        disabled.update(_SERVICE_CATEGORIES)

    categories = tuple(c for c in Category.ordered() if c not in disabled)
    return InstallationPlan(
        categories=categories,
        temp_dir=Path(temp_dir) if temp_dir else config.get_temp_path(),
        compose_file=Path(compose_file) if compose_file else config.get_compose_path(),
        install_cli_extension=not skip_cli_extension and not skip_rust,
    )
