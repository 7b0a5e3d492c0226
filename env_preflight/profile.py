"""Static description of the project layout and requirements being checked."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


@dataclass(frozen=True)
class ProjectProfile:
    required_dirs: Tuple[str, ...] = ("core", "tools")
    required_manifests: Tuple[str, ...] = ("core/pyproject.toml", "tools/pyproject.toml")
    optional_dirs: Tuple[str, ...] = ("exports",)
    optional_packages: Tuple[str, ...] = ("framework", "aden_tools")
    versioned_dependency: str = "openai"
    versioned_dependency_min_major: int = 1
    versioned_dependency_spec: str = "openai>=1.0.0"
    min_python: Tuple[int, int] = (3, 11)
    interpreter_candidates: Tuple[str, ...] = ("python3", "python")
    package_manager: str = "pip"
    venv_marker: str = "VIRTUAL_ENV"
    installer: str = "./scripts/setup-python.sh"
    docs: Tuple[str, ...] = ("ENVIRONMENT_SETUP.md", "DEVELOPER.md")

    @property
    def min_python_label(self) -> str:
        return f"{self.min_python[0]}.{self.min_python[1]}+"


DEFAULT_PROFILE = ProjectProfile()


def resolve_project_root(start: Optional[Path] = None) -> Path:
    """Return the project root for a run started from ``start``.

    The tool is invoked either from the repository root or from its
    ``scripts/`` directory; the latter maps to its parent.
    """
    path = (start or Path.cwd()).resolve()
    if path.name == "scripts":
        return path.parent
    return path
