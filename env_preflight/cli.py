"""Entry point for the env-preflight command line tool."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .formatting import SYMBOLS, closing_message, format_report
from .probes import DEFAULT_TIMEOUT, ProbeRunner
from .profile import DEFAULT_PROFILE, ProjectProfile, resolve_project_root
from .remediation import detect_os_family
from .report import RunReport, Status
from .rules import DEFAULT_RULES, CheckContext, run_checks

STATUS_STYLES = {Status.PASS: "green", Status.WARN: "yellow", Status.FAIL: "red"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="env-preflight",
        description="Check the local environment before running the project setup.",
    )
    parser.add_argument("--project-root", type=Path, default=None, help="Project root to inspect (default: resolved from the working directory)")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--ui", action="store_true", help="Render the report with a Rich terminal UI")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Seconds allowed per subprocess probe")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every probe to stderr")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    project_root = args.project_root.resolve() if args.project_root else resolve_project_root()
    context = CheckContext(
        runner=ProbeRunner(timeout=args.timeout),
        project_root=project_root,
        os_family=detect_os_family(),
        profile=DEFAULT_PROFILE,
    )
    report = run_checks(context, DEFAULT_RULES)

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    elif args.ui:
        _render_rich(report, DEFAULT_PROFILE)
    else:
        print(format_report(report, DEFAULT_PROFILE))
    return report.exit_code


def _render_rich(report: RunReport, profile: ProjectProfile, console: Optional[Console] = None) -> None:
    console = console or Console()

    console.print(Panel(f"Environment Validation Checklist - {report.project_root}", style="bold cyan"))

    for index, (section, results) in enumerate(report.sections(), start=1):
        table = Table(title=f"{index}. {section}", box=box.SIMPLE_HEAD, title_justify="left")
        table.add_column("", width=2)
        table.add_column("Finding")
        table.add_column("Quick fix")
        for result in results:
            style = STATUS_STYLES[result.status]
            table.add_row(
                f"[{style}]{SYMBOLS[result.status]}[/{style}]",
                escape(result.message),
                escape("\n".join(result.remediation)),
            )
        console.print(table)

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("[green]Passed[/green]", str(report.passed))
    summary.add_row("[yellow]Warnings[/yellow]", str(report.warned))
    summary.add_row("[red]Failed[/red]", str(report.failed))
    console.print(summary)

    console.print(Panel("\n".join(_closing_lines(report, profile)), style=f"bold {STATUS_STYLES[report.status]}"))


def _closing_lines(report: RunReport, profile: ProjectProfile) -> List[str]:
    return [line for line in closing_message(report, profile) if line]


if __name__ == "__main__":
    raise SystemExit(main())
