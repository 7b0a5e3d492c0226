"""Read-only inspections of the local machine.

Every probe returns a plain observation. A resource that is missing, crashes
or times out is reported as ``None``/``False``; probes never raise.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import re
import shutil
import subprocess
import tempfile
from typing import Iterable, Optional, Sequence, Tuple

import psutil

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

_VERSION_SNIPPET = "import sys; print('%d.%d' % sys.version_info[:2])"
_VERSION_RE = re.compile(r"^(\d+)\.(\d+)$")


@dataclass
class CommandOutput:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def combined(self) -> str:
        return f"{self.stdout}\n{self.stderr}".strip()


@dataclass
class WriteProbe:
    writable: bool
    location: str
    free_bytes: Optional[int] = None
    error: Optional[str] = None


class ProbeRunner:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def run(self, args: Sequence[str]) -> Optional[CommandOutput]:
        """Run a command and capture its output, or ``None`` if it could not finish."""
        logger.debug("probe: %s", " ".join(args))
        try:
            completed = subprocess.run(
                list(args),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("probe timed out after %.1fs: %s", self.timeout, args[0])
            return None
        except OSError as exc:
            logger.debug("probe could not start %s: %s", args[0], exc)
            return None
        logger.debug("probe exit code %d", completed.returncode)
        return CommandOutput(completed.returncode, completed.stdout or "", completed.stderr or "")

    def find_interpreter(self, candidates: Iterable[str]) -> Optional[str]:
        for name in candidates:
            path = shutil.which(name)
            if path:
                logger.debug("interpreter %s resolved to %s", name, path)
                return path
        return None

    def interpreter_version(self, python: str) -> Optional[Tuple[int, int]]:
        output = self.run([python, "-c", _VERSION_SNIPPET])
        if output is None or not output.ok:
            return None
        return parse_version(output.stdout)

    def package_manager_version(self, python: str) -> Optional[str]:
        output = self.run([python, "-m", "pip", "--version"])
        if output is None or not output.ok:
            return None
        # "pip 24.0 from /path/to/pip (python 3.12)"
        fields = output.stdout.split()
        return fields[1] if len(fields) > 1 else "unknown"

    def can_import(self, python: str, module: str) -> bool:
        output = self.run([python, "-c", f"import {module}"])
        return output is not None and output.ok

    def module_version(self, python: str, module: str) -> Optional[str]:
        snippet = f"import {module}; print(getattr({module}, '__version__', 'unknown'))"
        output = self.run([python, "-c", snippet])
        if output is None or not output.ok:
            return None
        return output.stdout.strip() or "unknown"

    def dry_run_install(self, python: str) -> Optional[str]:
        output = self.run([python, "-m", "pip", "install", "--dry-run", "pip"])
        if output is None:
            return None
        return output.combined

    def env_var(self, name: str) -> Optional[str]:
        return os.environ.get(name) or None

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def probe_write_access(self) -> WriteProbe:
        """Create, write and remove a scratch directory under the temp location."""
        location = tempfile.tempdir or os.environ.get("TMPDIR") or "temporary directory"
        scratch: Optional[str] = None
        try:
            location = tempfile.gettempdir()
            scratch = tempfile.mkdtemp(prefix="env-preflight-")
            with open(os.path.join(scratch, "probe"), "w", encoding="utf-8") as handle:
                handle.write("ok")
        except OSError as exc:
            logger.debug("write probe failed in %s: %s", location, exc)
            return WriteProbe(writable=False, location=location, error=str(exc))
        finally:
            if scratch is not None:
                shutil.rmtree(scratch, ignore_errors=True)
        return WriteProbe(writable=True, location=location, free_bytes=_free_bytes(location))


def parse_version(text: str) -> Optional[Tuple[int, int]]:
    match = _VERSION_RE.match(text.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def _free_bytes(path: str) -> Optional[int]:
    try:
        return psutil.disk_usage(path).free
    except OSError:
        return None
