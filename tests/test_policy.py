from pathlib import Path

import pytest

from diligent.dependency_scanner import PipDeper
from diligent.license_catalog import DEFAULT_CATALOG
from diligent.policy import (
    ExitStatus,
    IgnorePatternError,
    RunResult,
    WhitelistViolation,
    apply_ignore_patterns,
    compile_ignore_patterns,
    evaluate_run,
    is_ignored,
    load_config,
    process_manifest,
    validate_dependencies,
)
from diligent.types import Dep, DependencyWarning


def _dep(name: str, identifier: str) -> Dep:
    return Dep(name=name, license=DEFAULT_CATALOG.resolve_identifier(identifier))


def test_zero_dependencies_is_a_hard_failure_regardless_of_warnings():
    warnings = [DependencyWarning(f"pkg{i}", "empty license field") for i in range(3)]

    result = evaluate_run([], warnings)

    assert result.status is ExitStatus.NO_DEPENDENCIES
    assert len(result.warnings) == 3


def test_warnings_alongside_dependencies_still_succeed():
    result = evaluate_run([_dep("a", "MIT")], [DependencyWarning("b", "empty license field")])

    assert result.status is ExitStatus.WARNINGS
    assert not result.violations


def test_violations_are_reported_separately_from_warnings():
    whitelist = DEFAULT_CATALOG.build_whitelist(["permissive"])

    result = evaluate_run(
        [_dep("ok", "MIT"), _dep("viral", "GPL-3.0")],
        [DependencyWarning("missing", "empty license field")],
        whitelist,
    )

    assert result.violations == [WhitelistViolation("viral", "GPL-3.0")]
    assert result.warnings == [DependencyWarning("missing", "empty license field")]
    assert result.status is ExitStatus.WHITELIST_VIOLATION


def test_clean_run_is_ok():
    result = evaluate_run([_dep("a", "MIT")], [], DEFAULT_CATALOG.build_whitelist(["MIT"]))

    assert result.status is ExitStatus.OK
    assert result.passed


def test_empty_whitelist_disables_validation():
    assert validate_dependencies([_dep("viral", "AGPL-3.0")], frozenset()) == []


def test_ignore_patterns_filter_deps_and_warnings_before_validation():
    patterns = compile_ignore_patterns(["^internal-", "vendored"])

    result = evaluate_run(
        [_dep("internal-tool", "GPL-3.0"), _dep("requests", "Apache-2.0")],
        [DependencyWarning("my-vendored-lib", "empty license field")],
        DEFAULT_CATALOG.build_whitelist(["permissive"]),
        patterns,
    )

    assert [dep.name for dep in result.dependencies] == ["requests"]
    assert result.warnings == []
    assert result.status is ExitStatus.OK


def test_apply_ignore_patterns_keeps_order():
    deps = [_dep("c", "MIT"), _dep("skip-me", "MIT"), _dep("a", "MIT")]

    kept, _ = apply_ignore_patterns(deps, [], compile_ignore_patterns(["skip"]))

    assert [dep.name for dep in kept] == ["c", "a"]


def test_invalid_ignore_pattern_is_rejected():
    with pytest.raises(IgnorePatternError):
        compile_ignore_patterns(["(unclosed"])


def test_process_manifest_discards_everything_on_parse_error(fake_fetcher):
    fetcher = fake_fetcher({"good": "MIT"})

    result = process_manifest(PipDeper(fetcher), b"good==1.0\nbad==\n")

    assert result.status is ExitStatus.MANIFEST_INVALID
    assert result.dependencies == []
    assert "expected a version string" in result.error
    assert fetcher.calls == []


def test_process_manifest_reports_in_manifest_order(fake_fetcher):
    fetcher = fake_fetcher({"zeta": "MIT", "alpha": "Apache-2.0"})

    result = process_manifest(PipDeper(fetcher), b"zeta\nalpha\n")

    assert [dep.name for dep in result.dependencies] == ["zeta", "alpha"]
    assert result.status is ExitStatus.OK


def test_run_result_as_dict_exposes_counts():
    result = RunResult(
        dependencies=[_dep("a", "MIT")],
        warnings=[DependencyWarning("b", "empty license field")],
    )

    payload = result.as_dict()

    assert payload["status"] == "warnings"
    assert payload["exit_code"] == 64
    assert payload["counts"] == {"dependencies": 1, "warnings": 1, "violations": 0}


def test_exit_statuses_are_distinct():
    assert len({int(status) for status in ExitStatus}) == len(ExitStatus)


def test_load_config(tmp_path: Path):
    config_file = tmp_path / "diligent.yml"
    config_file.write_text(
        """
whitelist:
  - permissive
  - MPL-2.0
ignore:
  - "^internal-"
  - "^test-"
npm_dev_deps: true
"""
    )

    config = load_config(config_file)

    assert config.whitelist == ["permissive", "MPL-2.0"]
    assert config.ignore == ["^internal-", "^test-"]
    assert config.npm_dev_deps is True
    assert config.strict_whitelist is True


def test_load_config_rejects_non_mapping(tmp_path: Path):
    config_file = tmp_path / "diligent.yml"
    config_file.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        load_config(config_file)


def test_load_config_keeps_ignore_string_as_one_pattern(tmp_path: Path):
    config_file = tmp_path / "diligent.yml"
    config_file.write_text('whitelist: "MIT, ISC"\nignore: "^lib{1,2}$"\n')

    config = load_config(config_file)

    assert config.whitelist == ["MIT", "ISC"]
    assert config.ignore == ["^lib{1,2}$"]
    assert is_ignored("libb", compile_ignore_patterns(config.ignore))
    assert not is_ignored("lib2", compile_ignore_patterns(config.ignore))


@pytest.mark.parametrize("key", ["strict_whitelist", "npm_dev_deps"])
@pytest.mark.parametrize("value", ['"false"', "0", "yes please"])
def test_load_config_rejects_non_boolean_flags(tmp_path: Path, key, value):
    config_file = tmp_path / "diligent.yml"
    config_file.write_text(f"{key}: {value}\n")

    with pytest.raises(ValueError) as excinfo:
        load_config(config_file)
    assert key in str(excinfo.value)


def test_load_config_accepts_boolean_flags(tmp_path: Path):
    config_file = tmp_path / "diligent.yml"
    config_file.write_text("strict_whitelist: false\n")

    assert load_config(config_file).strict_whitelist is False
