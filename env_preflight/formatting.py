"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import List, Sequence

from .profile import DEFAULT_PROFILE, ProjectProfile
from .report import CheckResult, RunReport, Status

SYMBOLS = {Status.PASS: "✓", Status.FAIL: "✗", Status.WARN: "⚠"}
RULE = "=" * 50


def format_bytes(num: float) -> str:
    suffixes = ["B", "KiB", "MiB", "GiB", "TiB"]
    value = float(num)
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}"
        value /= 1024
    return f"{value:.1f} TiB"


def format_result(result: CheckResult) -> List[str]:
    lines = [f"{SYMBOLS[result.status]} {result.message}"]
    lines.extend(f"  → {step}" for step in result.remediation)
    return lines


def closing_message(report: RunReport, profile: ProjectProfile = DEFAULT_PROFILE) -> List[str]:
    """Pick one of the three closing messages, each naming the next command."""
    if report.status is Status.PASS:
        return ["✓ All checks passed!", "", "You're ready to run setup:", f"  {profile.installer}"]
    if report.status is Status.WARN:
        return [
            "⚠ Some warnings detected, but setup should proceed",
            "",
            "You can run setup, but consider addressing warnings:",
            f"  {profile.installer}",
        ]
    lines = [
        "✗ Some checks failed. Please fix the issues above before running setup.",
        "",
        "After fixing issues, run:",
        f"  {profile.installer}",
    ]
    if profile.docs:
        lines.extend(["", "For help, see:"])
        lines.extend(f"  • {doc}" for doc in profile.docs)
    return lines


def format_summary(report: RunReport) -> List[str]:
    return [
        RULE,
        f"  Summary: {report.passed} passed, {report.failed} failed, {report.warned} warnings",
        RULE,
    ]


def format_report(report: RunReport, profile: ProjectProfile = DEFAULT_PROFILE) -> str:
    lines: List[str] = [RULE, "  Environment Validation Checklist", RULE, "", f"Project root: {report.project_root}"]
    for index, (section, results) in enumerate(report.sections(), start=1):
        lines.extend(_format_section(index, section, results))
    lines.append("")
    lines.extend(format_summary(report))
    lines.append("")
    lines.extend(closing_message(report, profile))
    return "\n".join(lines)


def _format_section(index: int, section: str, results: Sequence[CheckResult]) -> List[str]:
    lines = ["", f"{index}. {section}", "-" * 40]
    for result in results:
        lines.extend(format_result(result))
    return lines
