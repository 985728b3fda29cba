from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import AbstractSet, Iterable, List, Optional, Sequence, Tuple

import yaml

from .dependency_scanner import Deper
from .log import get_logger
from .requirements_parser import ManifestParseError
from .types import Dep, DependencyWarning


log = get_logger(__name__)


class ExitStatus(IntEnum):
    OK = 0
    WARNINGS = 64
    REPORT_FAILED = 65
    MANIFEST_INVALID = 66
    NO_DEPENDENCIES = 67
    WHITELIST_VIOLATION = 68
    UNSUPPORTED_MANIFEST = 69
    INVALID_WHITELIST = 70
    INVALID_IGNORE_PATTERN = 71


class IgnorePatternError(ValueError):
    pass


@dataclass
class DiligentConfig:
    whitelist: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    npm_dev_deps: bool = False
    strict_whitelist: bool = True


def _as_list(value: object, key: str, split_commas: bool = True) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        if not split_commas:
            return [value]
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item) for item in value]
    raise ValueError(f"'{key}' must be a list or a string")


def _as_bool(value: object, key: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be true or false, got {value!r}")
    return value


def load_config(path: Path) -> DiligentConfig:
    """Read a YAML config file.

    A ``whitelist`` string is comma separated. An ``ignore`` string is one
    regular expression, since commas are valid inside a pattern; list several
    patterns as a YAML sequence.
    """

    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"{path}: invalid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return DiligentConfig(
        whitelist=_as_list(raw.get("whitelist"), "whitelist"),
        ignore=_as_list(raw.get("ignore"), "ignore", split_commas=False),
        npm_dev_deps=_as_bool(raw.get("npm_dev_deps"), "npm_dev_deps", False),
        strict_whitelist=_as_bool(raw.get("strict_whitelist"), "strict_whitelist", True),
    )


def compile_ignore_patterns(patterns: Iterable[str]) -> List[re.Pattern[str]]:
    compiled: List[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise IgnorePatternError(f"invalid ignore pattern '{pattern}': {exc}") from exc
    return compiled


def is_ignored(name: str, patterns: Sequence[re.Pattern[str]]) -> bool:
    return any(pattern.search(name) for pattern in patterns)


def apply_ignore_patterns(
    deps: Sequence[Dep],
    warnings: Sequence[DependencyWarning],
    patterns: Sequence[re.Pattern[str]],
) -> Tuple[List[Dep], List[DependencyWarning]]:
    kept_deps = [dep for dep in deps if not is_ignored(dep.name, patterns)]
    kept_warnings = [warning for warning in warnings if not is_ignored(warning.subject, patterns)]
    return kept_deps, kept_warnings


@dataclass(frozen=True)
class WhitelistViolation:
    name: str
    license_identifier: str

    def __str__(self) -> str:
        return f"{self.name}: license {self.license_identifier} is not whitelisted"


def validate_dependencies(deps: Iterable[Dep], whitelist: AbstractSet[str]) -> List[WhitelistViolation]:
    """Return the deps whose license falls outside ``whitelist``.

    An empty whitelist means no whitelist was configured, so nothing fails.
    """

    if not whitelist:
        return []
    return [
        WhitelistViolation(dep.name, dep.license_identifier)
        for dep in deps
        if dep.license_identifier not in whitelist
    ]


@dataclass
class RunResult:
    dependencies: List[Dep] = field(default_factory=list)
    warnings: List[DependencyWarning] = field(default_factory=list)
    violations: List[WhitelistViolation] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def status(self) -> ExitStatus:
        if self.error is not None:
            return ExitStatus.MANIFEST_INVALID
        if not self.dependencies:
            return ExitStatus.NO_DEPENDENCIES
        if self.violations:
            return ExitStatus.WHITELIST_VIOLATION
        if self.warnings:
            return ExitStatus.WARNINGS
        return ExitStatus.OK

    @property
    def passed(self) -> bool:
        return self.status is ExitStatus.OK

    def as_dict(self) -> dict:
        return {
            "status": self.status.name.lower(),
            "exit_code": int(self.status),
            "error": self.error,
            "counts": {
                "dependencies": len(self.dependencies),
                "warnings": len(self.warnings),
                "violations": len(self.violations),
            },
            "warnings": [{"subject": w.subject, "reason": w.reason} for w in self.warnings],
            "violations": [
                {"name": v.name, "license": v.license_identifier} for v in self.violations
            ],
        }


def evaluate_run(
    deps: Sequence[Dep],
    warnings: Sequence[DependencyWarning],
    whitelist: AbstractSet[str] = frozenset(),
    ignore_patterns: Sequence[re.Pattern[str]] = (),
) -> RunResult:
    kept_deps, kept_warnings = apply_ignore_patterns(deps, warnings, ignore_patterns)
    return RunResult(
        dependencies=kept_deps,
        warnings=kept_warnings,
        violations=validate_dependencies(kept_deps, whitelist),
    )


def process_manifest(
    deper: Deper,
    manifest: bytes,
    whitelist: AbstractSet[str] = frozenset(),
    ignore_patterns: Sequence[re.Pattern[str]] = (),
) -> RunResult:
    """Resolve one manifest and classify the outcome.

    A manifest that cannot be parsed yields a result carrying only the error;
    nothing parsed before the failure is kept.
    """

    try:
        deps, warnings = deper.dependencies(manifest)
    except ManifestParseError as exc:
        log.info("%s manifest rejected: %s", deper.name, exc)
        return RunResult(error=str(exc))
    return evaluate_run(deps, warnings, whitelist, ignore_patterns)
