"""The ordered catalog of environment checks and the loop that runs it."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .formatting import format_bytes
from .probes import ProbeRunner, WriteProbe
from .profile import DEFAULT_PROFILE, ProjectProfile
from .remediation import OsFamily, resolve_remediation, skip_remediation
from .report import CheckResult, RunReport, Status

logger = logging.getLogger(__name__)

PYTHON_PRESENT = "python.present"
PYTHON_VERSION = "python.version"
PIP_PRESENT = "pip.present"
VENV_ACTIVE = "venv.active"
EXTERNALLY_MANAGED = "pip.externally_managed"
WRITE_ACCESS = "fs.write_access"

SECTION_PYTHON = "Python Installation"
SECTION_PIP = "pip Package Manager"
SECTION_VENV = "Virtual Environment"
SECTION_LAYOUT = "Project Structure"
SECTION_PACKAGES = "Package Installation Status"
SECTION_ISSUES = "Common Issue Detection"

RESTRICTION_SIGNATURES = (
    re.compile(r"externally-managed-environment", re.IGNORECASE),
    re.compile(r"externally managed", re.IGNORECASE),
)
UNSUPPORTED_SIGNATURES = (
    re.compile(r"no such option:\s*--dry-run", re.IGNORECASE),
    re.compile(r"unknown option.*dry-run", re.IGNORECASE),
    re.compile(r"unrecognized.*dry-run", re.IGNORECASE),
)


@dataclass(frozen=True)
class Verdict:
    status: Status
    message: str


@dataclass
class CheckContext:
    runner: ProbeRunner
    project_root: Path
    os_family: OsFamily
    profile: ProjectProfile = DEFAULT_PROFILE
    observations: Dict[str, Any] = field(default_factory=dict)

    @property
    def interpreter(self) -> Optional[str]:
        return self.observations.get(PYTHON_PRESENT)

    def remediation_params(self) -> Dict[str, str]:
        python = os.path.basename(self.interpreter) if self.interpreter else "python3"
        return {
            "installer": self.profile.installer,
            "package_manager": self.profile.package_manager,
            "dependency_spec": self.profile.versioned_dependency_spec,
            "python": python,
            "min_python": "%d.%d" % self.profile.min_python,
            "docs": self.profile.docs[0] if self.profile.docs else "the project documentation",
        }


Probe = Callable[[CheckContext], Any]
Classifier = Callable[[Any, CheckContext], Verdict]


@dataclass(frozen=True)
class CheckDefinition:
    id: str
    section: str
    probe: Probe
    classify: Classifier
    requires: Tuple[str, ...] = ()


# -- interpreter and package manager ------------------------------------------


def _probe_interpreter(ctx: CheckContext) -> Optional[str]:
    return ctx.runner.find_interpreter(ctx.profile.interpreter_candidates)


def _classify_interpreter(path: Optional[str], ctx: CheckContext) -> Verdict:
    if path is None:
        tried = ", ".join(ctx.profile.interpreter_candidates)
        return Verdict(Status.FAIL, f"Python not found (tried {tried})")
    return Verdict(Status.PASS, f"Python interpreter found: {path}")


def _probe_version(ctx: CheckContext) -> Optional[Tuple[int, int]]:
    return ctx.runner.interpreter_version(ctx.interpreter)


def _classify_version(version: Optional[Tuple[int, int]], ctx: CheckContext) -> Verdict:
    required = ctx.profile.min_python_label
    if version is None:
        return Verdict(Status.FAIL, f"Could not get Python version (broken install?); requires {required}")
    found = "%d.%d" % version
    if version < ctx.profile.min_python:
        return Verdict(Status.FAIL, f"Python version too old (found {found}, requires {required})")
    return Verdict(Status.PASS, f"Python {found} detected (requires {required})")


def _probe_pip(ctx: CheckContext) -> Optional[str]:
    return ctx.runner.package_manager_version(ctx.interpreter)


def _classify_pip(version: Optional[str], ctx: CheckContext) -> Verdict:
    if version is None:
        return Verdict(Status.FAIL, "pip not available")
    return Verdict(Status.PASS, f"pip {version} detected")


# -- virtual environment -------------------------------------------------------


def _probe_venv(ctx: CheckContext) -> Optional[str]:
    return ctx.runner.env_var(ctx.profile.venv_marker)


def _classify_venv(marker: Optional[str], ctx: CheckContext) -> Verdict:
    if not marker:
        return Verdict(Status.WARN, "Not running in a virtual environment")
    name = os.path.basename(marker.rstrip("/\\")) or marker
    return Verdict(Status.PASS, f"Running in virtual environment: {name}")


# -- project layout ------------------------------------------------------------


def _slug(relative: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]+", "_", relative).strip("_")


def _required_dir(name: str) -> CheckDefinition:
    def classify(exists: bool, ctx: CheckContext) -> Verdict:
        if exists:
            return Verdict(Status.PASS, f"{name}/ directory exists")
        return Verdict(Status.FAIL, f"{name}/ directory not found")

    return CheckDefinition(
        id=f"layout.dir.{_slug(name)}",
        section=SECTION_LAYOUT,
        probe=lambda ctx: ctx.runner.is_dir(ctx.project_root / name),
        classify=classify,
    )


def _required_manifest(relative: str) -> CheckDefinition:
    def classify(exists: bool, ctx: CheckContext) -> Verdict:
        if exists:
            return Verdict(Status.PASS, f"{relative} exists")
        return Verdict(Status.FAIL, f"{relative} not found")

    return CheckDefinition(
        id=f"layout.manifest.{_slug(relative)}",
        section=SECTION_LAYOUT,
        probe=lambda ctx: ctx.runner.is_file(ctx.project_root / relative),
        classify=classify,
    )


def _optional_dir(name: str) -> CheckDefinition:
    def classify(exists: bool, ctx: CheckContext) -> Verdict:
        if exists:
            return Verdict(Status.PASS, f"{name}/ directory exists")
        return Verdict(Status.WARN, f"{name}/ directory not found (will be created during setup)")

    return CheckDefinition(
        id=f"layout.optional.{_slug(name)}",
        section=SECTION_LAYOUT,
        probe=lambda ctx: ctx.runner.is_dir(ctx.project_root / name),
        classify=classify,
    )


# -- installed packages ----------------------------------------------------------


def _optional_package(module: str) -> CheckDefinition:
    def classify(importable: bool, ctx: CheckContext) -> Verdict:
        if importable:
            return Verdict(Status.PASS, f"{module} package installed")
        return Verdict(Status.WARN, f"{module} package not installed (will be installed during setup)")

    return CheckDefinition(
        id=f"packages.import.{module}",
        section=SECTION_PACKAGES,
        probe=lambda ctx: ctx.runner.can_import(ctx.interpreter, module),
        classify=classify,
        requires=(PIP_PRESENT,),
    )


def _leading_major(version: str) -> Optional[int]:
    match = re.match(r"\s*(\d+)", version)
    return int(match.group(1)) if match else None


def _versioned_dependency(module: str) -> CheckDefinition:
    def classify(version: Optional[str], ctx: CheckContext) -> Verdict:
        profile = ctx.profile
        if version is None:
            return Verdict(Status.WARN, f"{module} package not installed (will be installed during setup)")
        major = _leading_major(version)
        if major is None:
            return Verdict(
                Status.WARN,
                f"{module} version could not be determined ({version}); requires {profile.versioned_dependency_spec}",
            )
        if major < profile.versioned_dependency_min_major:
            return Verdict(
                Status.FAIL,
                f"{module} version {version} is incompatible (requires {profile.versioned_dependency_spec})",
            )
        return Verdict(Status.PASS, f"{module} {version} is compatible")

    return CheckDefinition(
        id=f"packages.version.{module}",
        section=SECTION_PACKAGES,
        probe=lambda ctx: ctx.runner.module_version(ctx.interpreter, module),
        classify=classify,
        requires=(PIP_PRESENT,),
    )


# -- common issues ---------------------------------------------------------------


def _probe_dry_run(ctx: CheckContext) -> Optional[str]:
    return ctx.runner.dry_run_install(ctx.interpreter)


def _classify_dry_run(output: Optional[str], ctx: CheckContext) -> Verdict:
    if output is None:
        return Verdict(Status.WARN, "Could not run the pip dry-run probe; setup will detect PEP 668 restrictions")
    if any(sig.search(output) for sig in RESTRICTION_SIGNATURES):
        return Verdict(Status.FAIL, "PEP 668 externally-managed-environment detected")
    if any(sig.search(output) for sig in UNSUPPORTED_SIGNATURES):
        return Verdict(
            Status.WARN,
            "Cannot pre-check PEP 668 (pip version may not support --dry-run); setup will detect it",
        )
    return Verdict(Status.PASS, "No PEP 668 restrictions detected")


def _probe_write(ctx: CheckContext) -> WriteProbe:
    return ctx.runner.probe_write_access()


def _classify_write(probe: WriteProbe, ctx: CheckContext) -> Verdict:
    if not probe.writable:
        return Verdict(Status.FAIL, f"Write permissions issue detected in {probe.location}")
    if probe.free_bytes is None:
        return Verdict(Status.PASS, f"Write permissions OK ({probe.location})")
    return Verdict(Status.PASS, f"Write permissions OK ({probe.location}, {format_bytes(probe.free_bytes)} free)")


def build_rule_set(profile: ProjectProfile = DEFAULT_PROFILE) -> Tuple[CheckDefinition, ...]:
    """Build the ordered check catalog for a project profile."""
    rules: List[CheckDefinition] = [
        CheckDefinition(PYTHON_PRESENT, SECTION_PYTHON, _probe_interpreter, _classify_interpreter),
        CheckDefinition(PYTHON_VERSION, SECTION_PYTHON, _probe_version, _classify_version, (PYTHON_PRESENT,)),
        CheckDefinition(PIP_PRESENT, SECTION_PIP, _probe_pip, _classify_pip, (PYTHON_PRESENT,)),
        CheckDefinition(VENV_ACTIVE, SECTION_VENV, _probe_venv, _classify_venv),
    ]
    for directory in profile.required_dirs:
        rules.append(_required_dir(directory))
    for manifest in profile.required_manifests:
        rules.append(_required_manifest(manifest))
    for directory in profile.optional_dirs:
        rules.append(_optional_dir(directory))
    for module in profile.optional_packages:
        rules.append(_optional_package(module))
    rules.append(_versioned_dependency(profile.versioned_dependency))
    rules.append(
        CheckDefinition(EXTERNALLY_MANAGED, SECTION_ISSUES, _probe_dry_run, _classify_dry_run, (PIP_PRESENT,))
    )
    rules.append(CheckDefinition(WRITE_ACCESS, SECTION_ISSUES, _probe_write, _classify_write))
    return tuple(rules)


DEFAULT_RULES = build_rule_set(DEFAULT_PROFILE)


def evaluate(rule: CheckDefinition, ctx: CheckContext, report: RunReport) -> CheckResult:
    """Run one check, or report it as a failed skip when a prerequisite did not pass."""
    unmet = [required for required in rule.requires if not _passed(report, required)]
    if unmet:
        return CheckResult(
            id=rule.id,
            section=rule.section,
            status=Status.FAIL,
            message=f"Skipped: prerequisite unmet ({unmet[0]})",
            remediation=skip_remediation(unmet[0]),
            skipped=True,
        )

    try:
        observation = rule.probe(ctx)
        ctx.observations[rule.id] = observation
        verdict = rule.classify(observation, ctx)
    except Exception as exc:
        logger.exception("check %s raised", rule.id)
        verdict = Verdict(Status.FAIL, f"Check could not complete ({type(exc).__name__}: {exc})")

    remediation = resolve_remediation(rule.id, verdict.status, ctx.os_family, **ctx.remediation_params())
    return CheckResult(
        id=rule.id,
        section=rule.section,
        status=verdict.status,
        message=verdict.message,
        remediation=remediation,
    )


def run_checks(ctx: CheckContext, rules: Sequence[CheckDefinition] = DEFAULT_RULES) -> RunReport:
    report = RunReport(project_root=str(ctx.project_root), os_family=ctx.os_family.value)
    for rule in rules:
        result = evaluate(rule, ctx, report)
        logger.debug("%s -> %s", rule.id, result.status.value)
        report.add(result)
    report.interpreter = ctx.interpreter
    return report


def _passed(report: RunReport, check_id: str) -> bool:
    result = report.get(check_id)
    return result is not None and result.status is Status.PASS
