"""Remediation lookup keyed by check id, status and operating system family."""

from __future__ import annotations

import sys
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

from .report import Status


class OsFamily(str, Enum):
    DARWIN = "darwin"
    LINUX = "linux"
    OTHER = "other"


def detect_os_family(signature: Optional[str] = None) -> OsFamily:
    """Map a platform signature (``sys.platform`` by default) to its family."""
    platform = (signature if signature is not None else sys.platform).lower()
    if platform.startswith("darwin"):
        return OsFamily.DARWIN
    if platform.startswith("linux"):
        return OsFamily.LINUX
    return OsFamily.OTHER


Entries = Mapping[OsFamily, Sequence[str]]
TableKey = Union[str, Tuple[str, Status]]

DOWNLOAD_URL = "https://www.python.org/downloads/"
GENERIC_REMEDIATION = "See {docs} for detailed help."

_VENV_STEPS = (
    "Create virtual environment: python3 -m venv .venv",
    "Activate it: source .venv/bin/activate",
    "Then run: {installer}",
)

# Keys are check ids or dotted id prefixes, optionally paired with a status.
# Every entry carries an OTHER fallback.
REMEDIATION_TABLE: Dict[TableKey, Entries] = {
    "python.present": {
        OsFamily.DARWIN: (
            "macOS (Homebrew): brew install python@{min_python}",
            f"macOS (Official): {DOWNLOAD_URL}",
        ),
        OsFamily.LINUX: (
            "Ubuntu/Debian: sudo apt update && sudo apt install python{min_python}",
            "Fedora/RHEL: sudo dnf install python{min_python}",
        ),
        OsFamily.OTHER: (f"Download from: {DOWNLOAD_URL}",),
    },
    "python.version": {
        OsFamily.DARWIN: (
            "macOS (Homebrew): brew install python@{min_python}",
            "macOS (pyenv): brew install pyenv && pyenv install {min_python} && pyenv global {min_python}",
        ),
        OsFamily.LINUX: (
            "Ubuntu/Debian: sudo apt update && sudo apt install python{min_python}",
            "Using pyenv: curl https://pyenv.run | bash && pyenv install {min_python} && pyenv global {min_python}",
        ),
        OsFamily.OTHER: (f"Download from: {DOWNLOAD_URL}",),
    },
    "pip.present": {
        OsFamily.DARWIN: (
            "{python} -m ensurepip --upgrade",
            "Or reinstall Python: brew reinstall python@{min_python}",
        ),
        OsFamily.LINUX: (
            "Ubuntu/Debian: sudo apt install python3-pip",
            "Fedora/RHEL: sudo dnf install python3-pip",
        ),
        OsFamily.OTHER: ("{python} -m ensurepip --upgrade",),
    },
    "venv.active": {
        OsFamily.OTHER: _VENV_STEPS,
    },
    "layout.dir": {
        OsFamily.OTHER: (
            "Ensure you're in the project root directory",
            "Re-clone repository if needed: git clone <repository-url>",
        ),
    },
    "layout.manifest": {
        OsFamily.OTHER: ("Repository may be incomplete. Try: git pull origin main",),
    },
    "layout.optional": {
        OsFamily.OTHER: ("It will be created during setup: {installer}",),
    },
    "packages.import": {
        OsFamily.OTHER: ("It will be installed during setup: {installer}",),
    },
    ("packages.version", Status.FAIL): {
        OsFamily.OTHER: ('{package_manager} install --upgrade "{dependency_spec}"',),
    },
    ("packages.version", Status.WARN): {
        OsFamily.OTHER: ("It will be installed or upgraded during setup: {installer}",),
    },
    ("pip.externally_managed", Status.FAIL): {
        OsFamily.OTHER: _VENV_STEPS
        + ("Alternative (not recommended): pass --break-system-packages to pip (may cause conflicts)",),
    },
    ("pip.externally_managed", Status.WARN): {
        OsFamily.OTHER: (
            "Setup will detect the restriction itself: {installer}",
            "For an early check, upgrade pip inside a virtual environment: {python} -m pip install --upgrade pip",
        ),
    },
    "fs.write_access": {
        OsFamily.DARWIN: (
            "Use a virtual environment to avoid permission issues",
            "python3 -m venv .venv && source .venv/bin/activate",
            "Check that $TMPDIR points to a writable directory: ls -ld \"$TMPDIR\"",
        ),
        OsFamily.LINUX: (
            "Use a virtual environment to avoid permission issues",
            "python3 -m venv .venv && source .venv/bin/activate",
            "Check that /tmp (or $TMPDIR) is writable: ls -ld /tmp",
        ),
        OsFamily.OTHER: ("Use a virtual environment to avoid permission issues",),
    },
}


def _prefixes(check_id: str) -> Iterator[str]:
    parts = check_id.split(".")
    for end in range(len(parts), 0, -1):
        yield ".".join(parts[:end])


def _lookup(check_id: str, status: Status) -> Optional[Entries]:
    for prefix in _prefixes(check_id):
        for key in ((prefix, status), prefix):
            if key in REMEDIATION_TABLE:
                return REMEDIATION_TABLE[key]
    return None


def resolve_remediation(
    check_id: str,
    status: Status,
    os_family: OsFamily,
    *,
    installer: str = "./scripts/setup-python.sh",
    package_manager: str = "pip",
    dependency_spec: str = "openai>=1.0.0",
    python: str = "python3",
    min_python: str = "3.11",
    docs: str = "ENVIRONMENT_SETUP.md",
) -> Tuple[str, ...]:
    """Return the ordered remediation steps for a check outcome.

    Passing checks get nothing. The OS-specific entry wins over the OTHER
    fallback, and ids without a table entry get a pointer to the docs.
    """
    if status is Status.PASS:
        return ()
    params = {
        "installer": installer,
        "package_manager": package_manager,
        "dependency_spec": dependency_spec,
        "python": python,
        "min_python": min_python,
        "docs": docs,
    }
    entries = _lookup(check_id, status)
    if entries is None:
        return (GENERIC_REMEDIATION.format(**params),)
    steps = entries.get(os_family) or entries[OsFamily.OTHER]
    return tuple(step.format(**params) for step in steps)


def skip_remediation(prerequisite_id: str) -> Tuple[str, ...]:
    return (f"Fix the '{prerequisite_id}' check first; this check runs once it passes.",)
