import pytest

from env_preflight.remediation import OsFamily
from env_preflight.report import Status
from env_preflight.rules import (
    DEFAULT_RULES,
    CheckDefinition,
    SECTION_VENV,
    build_rule_set,
    run_checks,
)

GATED_ON_INTERPRETER = [
    "python.version",
    "pip.present",
    "packages.import.framework",
    "packages.import.aden_tools",
    "packages.version.openai",
    "pip.externally_managed",
]


def assert_remediation_invariant(report):
    for result in report.results:
        if result.status is Status.PASS:
            assert result.remediation == ()
        else:
            assert result.remediation


def test_catalog_order_is_fixed():
    ids = [rule.id for rule in DEFAULT_RULES]
    assert ids == [
        "python.present",
        "python.version",
        "pip.present",
        "venv.active",
        "layout.dir.core",
        "layout.dir.tools",
        "layout.manifest.core_pyproject_toml",
        "layout.manifest.tools_pyproject_toml",
        "layout.optional.exports",
        "packages.import.framework",
        "packages.import.aden_tools",
        "packages.version.openai",
        "pip.externally_managed",
        "fs.write_access",
    ]


def test_all_checks_pass(make_context):
    report = run_checks(make_context())
    assert report.status is Status.PASS
    assert report.exit_code == 0
    assert report.failed == report.warned == 0
    assert report.passed == len(DEFAULT_RULES)
    assert report.interpreter == "/usr/bin/python3"
    assert_remediation_invariant(report)


def test_old_interpreter_fails_with_os_specific_upgrade(make_context):
    report = run_checks(make_context(os_family=OsFamily.DARWIN, version=(3, 9)))
    result = report.get("python.version")
    assert result.status is Status.FAIL
    assert "3.11+" in result.message
    assert "3.9" in result.message
    assert any("brew install python@3.11" in step for step in result.remediation)
    assert report.exit_code == 1

    linux = run_checks(make_context(os_family=OsFamily.LINUX, version=(3, 9))).get("python.version")
    assert any("apt install python3.11" in step for step in linux.remediation)


def test_unparsable_version_fails(make_context):
    result = run_checks(make_context(version=None)).get("python.version")
    assert result.status is Status.FAIL
    assert not result.skipped


def test_missing_venv_is_only_a_warning(make_context):
    report = run_checks(make_context(venv=None, version=(3, 12)))
    assert report.status is Status.WARN
    assert report.exit_code == 0
    assert report.warned == 1
    assert report.failed == 0
    venv = report.get("venv.active")
    assert venv.status is Status.WARN
    assert venv.section == SECTION_VENV
    assert "python3 -m venv .venv" in venv.remediation[0]


def test_zero_major_dependency_fails_with_upgrade_command(make_context):
    for family in OsFamily:
        report = run_checks(make_context(os_family=family, versions={"openai": "0.28.1"}))
        result = report.get("packages.version.openai")
        assert result.status is Status.FAIL
        assert "0.28.1" in result.message
        assert result.remediation == ('pip install --upgrade "openai>=1.0.0"',)


def test_missing_dependency_warns(make_context):
    result = run_checks(make_context(versions={})).get("packages.version.openai")
    assert result.status is Status.WARN


def test_undeterminable_dependency_version_warns(make_context):
    result = run_checks(make_context(versions={"openai": "unknown"})).get("packages.version.openai")
    assert result.status is Status.WARN
    assert "could not be determined" in result.message
    assert any("./scripts/setup-python.sh" in step for step in result.remediation)


def test_unwritable_scratch_location_fails(make_context):
    report = run_checks(make_context(writable=False))
    result = report.get("fs.write_access")
    assert result.status is Status.FAIL
    assert report.status is Status.FAIL
    assert report.exit_code == 1


def test_missing_interpreter_skips_dependent_checks(make_context):
    ctx = make_context(interpreter=None)
    report = run_checks(ctx)

    assert report.get("python.present").status is Status.FAIL
    for check_id in GATED_ON_INTERPRETER:
        result = report.get(check_id)
        assert result is not None
        assert result.status is Status.FAIL
        assert result.skipped
        assert result.remediation

    for check_id in ("venv.active", "layout.dir.core", "fs.write_access"):
        assert report.get(check_id).status is Status.PASS

    assert len(report.results) == len(DEFAULT_RULES)
    assert report.failed == 1 + len(GATED_ON_INTERPRETER)
    assert "interpreter_version" not in ctx.runner.calls
    assert "dry_run_install" not in ctx.runner.calls
    assert "probe_write_access" in ctx.runner.calls


def test_missing_pip_skips_package_checks(make_context):
    report = run_checks(make_context(pip=None))
    assert report.get("pip.present").status is Status.FAIL
    assert not report.get("pip.present").skipped
    assert report.get("python.version").status is Status.PASS
    for check_id in GATED_ON_INTERPRETER[2:]:
        assert report.get(check_id).skipped
        assert "pip.present" in report.get(check_id).message


def test_missing_layout_items(make_context):
    report = run_checks(make_context(layout=("tools", "tools/pyproject.toml")))
    assert report.get("layout.dir.core").status is Status.FAIL
    assert report.get("layout.manifest.core_pyproject_toml").status is Status.FAIL
    assert report.get("layout.dir.tools").status is Status.PASS
    assert report.get("layout.optional.exports").status is Status.WARN
    assert report.failed == 2
    assert report.warned == 1


def test_missing_optional_packages_warn(make_context):
    report = run_checks(make_context(importable=()))
    assert report.get("packages.import.framework").status is Status.WARN
    assert report.get("packages.import.aden_tools").status is Status.WARN
    assert report.exit_code == 0


@pytest.mark.parametrize(
    "output, expected",
    [
        ("error: externally-managed-environment\n\nThis environment is externally managed", Status.FAIL),
        ("no such option: --dry-run", Status.WARN),
        ("ERROR: unrecognized arguments: --dry-run", Status.WARN),
        (None, Status.WARN),
        ("Would install pip-24.0", Status.PASS),
    ],
)
def test_restricted_install_detection(make_context, output, expected):
    result = run_checks(make_context(dry_run=output)).get("pip.externally_managed")
    assert result.status is expected


def test_restricted_install_remediation_suggests_venv(make_context):
    result = run_checks(make_context(dry_run="externally-managed-environment")).get("pip.externally_managed")
    assert any("venv" in step for step in result.remediation)
    assert any("./scripts/setup-python.sh" in step for step in result.remediation)


def test_runs_are_idempotent(make_context):
    first = run_checks(make_context(venv=None, versions={"openai": "0.9.0"}))
    second = run_checks(make_context(venv=None, versions={"openai": "0.9.0"}))
    assert first.to_dict() == second.to_dict()


def test_broken_check_does_not_abort_run(make_context):
    def explode(ctx):
        raise RuntimeError("probe exploded")

    broken = CheckDefinition("custom.broken", "Custom", explode, lambda obs, ctx: None)
    rules = (broken,) + build_rule_set()
    report = run_checks(make_context(), rules)

    result = report.get("custom.broken")
    assert result.status is Status.FAIL
    assert "probe exploded" in result.message
    assert result.remediation
    assert report.passed == len(DEFAULT_RULES)


def test_remediation_invariant_across_scenarios(make_context):
    scenarios = [
        {},
        {"interpreter": None},
        {"pip": None, "venv": None},
        {"layout": (), "importable": (), "versions": {}},
        {"dry_run": "no such option: --dry-run", "writable": False},
    ]
    for kwargs in scenarios:
        for family in OsFamily:
            assert_remediation_invariant(run_checks(make_context(os_family=family, **kwargs)))
