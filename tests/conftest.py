from pathlib import Path

import pytest

from env_preflight.probes import ProbeRunner, WriteProbe
from env_preflight.remediation import OsFamily
from env_preflight.rules import CheckContext

PROJECT_ROOT = Path("/work/project")
FULL_LAYOUT = ("core", "tools", "exports", "core/pyproject.toml", "tools/pyproject.toml")


class FakeRunner(ProbeRunner):
    """ProbeRunner with canned observations; records which probes ran."""

    def __init__(
        self,
        *,
        root=PROJECT_ROOT,
        interpreter="/usr/bin/python3",
        version=(3, 12),
        pip="24.0",
        venv="/work/project/.venv",
        layout=FULL_LAYOUT,
        importable=("framework", "aden_tools"),
        versions=None,
        dry_run="Would install pip-24.0",
        writable=True,
    ):
        super().__init__(timeout=1.0)
        self.root = root
        self.interpreter = interpreter
        self.version = version
        self.pip = pip
        self.venv = venv
        self.layout = set(layout)
        self.importable = set(importable)
        self.versions = {"openai": "1.30.0"} if versions is None else versions
        self.dry_run = dry_run
        self.writable = writable
        self.calls = []

    def _relative(self, path):
        return Path(path).relative_to(self.root).as_posix()

    def find_interpreter(self, candidates):
        self.calls.append("find_interpreter")
        return self.interpreter

    def interpreter_version(self, python):
        self.calls.append("interpreter_version")
        return self.version

    def package_manager_version(self, python):
        self.calls.append("package_manager_version")
        return self.pip

    def can_import(self, python, module):
        self.calls.append(f"can_import:{module}")
        return module in self.importable

    def module_version(self, python, module):
        self.calls.append(f"module_version:{module}")
        return self.versions.get(module)

    def dry_run_install(self, python):
        self.calls.append("dry_run_install")
        return self.dry_run

    def env_var(self, name):
        return self.venv

    def is_dir(self, path):
        return self._relative(path) in self.layout

    def is_file(self, path):
        return self._relative(path) in self.layout

    def probe_write_access(self):
        self.calls.append("probe_write_access")
        if self.writable:
            return WriteProbe(writable=True, location="/tmp", free_bytes=50 * 1024**3)
        return WriteProbe(writable=False, location="/tmp", error="Permission denied")


@pytest.fixture
def make_context():
    def factory(os_family=OsFamily.LINUX, **runner_kwargs):
        runner = FakeRunner(**runner_kwargs)
        return CheckContext(runner=runner, project_root=runner.root, os_family=os_family)

    return factory
