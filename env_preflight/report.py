"""Check outcomes and their aggregation into a run report."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Status(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class CheckResult:
    id: str
    section: str
    status: Status
    message: str
    remediation: Tuple[str, ...] = ()
    skipped: bool = False

    def __post_init__(self) -> None:
        if self.status is Status.PASS and self.remediation:
            raise ValueError(f"{self.id}: passing check must not carry remediation")
        if self.status is not Status.PASS and not self.remediation:
            raise ValueError(f"{self.id}: {self.status.value} check needs at least one remediation")


def summarize(passed: int, warned: int, failed: int) -> Status:
    """Collapse the three counters into the overall run status."""
    if failed > 0:
        return Status.FAIL
    if warned > 0:
        return Status.WARN
    return Status.PASS


@dataclass
class RunReport:
    project_root: str
    os_family: str
    interpreter: Optional[str] = None
    results: List[CheckResult] = field(default_factory=list)
    passed: int = 0
    warned: int = 0
    failed: int = 0

    def add(self, result: CheckResult) -> None:
        self.results.append(result)
        if result.status is Status.PASS:
            self.passed += 1
        elif result.status is Status.WARN:
            self.warned += 1
        else:
            self.failed += 1

    @property
    def status(self) -> Status:
        return summarize(self.passed, self.warned, self.failed)

    @property
    def exit_code(self) -> int:
        return 1 if self.status is Status.FAIL else 0

    def get(self, check_id: str) -> Optional[CheckResult]:
        for result in self.results:
            if result.id == check_id:
                return result
        return None

    def sections(self) -> List[Tuple[str, List[CheckResult]]]:
        """Group results by section, keeping execution order in and across sections."""
        grouped: Dict[str, List[CheckResult]] = {}
        for result in self.results:
            grouped.setdefault(result.section, []).append(result)
        return list(grouped.items())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_root": self.project_root,
            "os_family": self.os_family,
            "interpreter": self.interpreter,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "summary": {"passed": self.passed, "warned": self.warned, "failed": self.failed},
            "results": [
                {
                    "id": result.id,
                    "section": result.section,
                    "status": result.status.value,
                    "message": result.message,
                    "remediation": list(result.remediation),
                    "skipped": result.skipped,
                }
                for result in self.results
            ],
        }
