from __future__ import annotations

import json
import re
import tomllib
from pathlib import PurePath
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

import requests  # type: ignore[import-untyped]

from .license_catalog import DEFAULT_CATALOG, LicenseCatalog
from .log import get_logger
from .registry_clients import (
    GitHubClient,
    GoLicenseGetter,
    MetadataFetchError,
    NpmRegistryClient,
    PyPIClient,
    go_repository_root,
)
from .requirements_parser import ManifestParseError, Requirement, parse_requirements
from .types import Dep, DependencyWarning, UnknownLicenseError


log = get_logger(__name__)

DependencyResult = Tuple[List[Dep], List[DependencyWarning]]

_NPM_EXACT_VERSION = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?$")


class UnsupportedManifestError(ValueError):
    pass


class LicenseFetcher(Protocol):
    def fetch_license(self, name: str, version: str = "") -> str:
        ...


class Deper(Protocol):
    """Resolves the licenses of the dependencies declared by one manifest format."""

    name: str

    def is_compatible(self, filename: str) -> bool:
        ...

    def dependencies(self, manifest: bytes) -> DependencyResult:
        """Return resolved deps and warnings, in manifest order.

        Raises ``ManifestParseError`` when the manifest itself is unreadable.
        Failures for a single dependency are reported as warnings instead.
        """
        ...


def resolve_requirements(
    requirements: Iterable[Requirement],
    fetcher: LicenseFetcher,
    catalog: LicenseCatalog,
) -> DependencyResult:
    deps: List[Dep] = []
    warnings: List[DependencyWarning] = []

    def _warn(name: str, reason: str) -> None:
        log.info("unable to resolve %s: %s", name, reason)
        warnings.append(DependencyWarning(subject=name, reason=reason))

    for req in requirements:
        log.debug("fetching license for %s %s", req.package_name, req.package_version or "(latest)")
        try:
            license_value = fetcher.fetch_license(req.package_name, req.package_version)
        except (MetadataFetchError, requests.RequestException) as exc:
            _warn(req.package_name, str(exc))
            continue

        if not license_value:
            _warn(req.package_name, "empty license field")
            continue

        try:
            lic = catalog.resolve_identifier(license_value)
        except UnknownLicenseError as exc:
            _warn(req.package_name, str(exc))
            continue

        deps.append(Dep(name=req.package_name, license=lic))

    return deps, warnings


class PipDeper:
    name = "pip"

    def __init__(self, client: LicenseFetcher, catalog: LicenseCatalog = DEFAULT_CATALOG) -> None:
        self.client = client
        self.catalog = catalog

    def is_compatible(self, filename: str) -> bool:
        return filename == "requirements.txt"

    def dependencies(self, manifest: bytes) -> DependencyResult:
        return resolve_requirements(parse_requirements(manifest), self.client, self.catalog)


def _load_json(manifest: bytes, label: str) -> dict:
    try:
        data = json.loads(manifest)
    except ValueError as exc:
        raise ManifestParseError(f"unable to parse {label}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestParseError(f"unable to parse {label}: expected a JSON object")
    return data


def normalize_npm_version(spec: str) -> str:
    """Reduce an npm version range to something the registry can serve.

    Caret, tilde and equality prefixes are dropped; anything that is still
    not a plain version resolves to ``latest``.
    """

    cleaned = str(spec).strip().lstrip("^~=v").strip()
    if cleaned.startswith(">="):
        cleaned = cleaned[2:].strip().lstrip("v")
    return cleaned if _NPM_EXACT_VERSION.match(cleaned) else "latest"


class NpmDeper:
    name = "npm"

    def __init__(
        self,
        client: LicenseFetcher,
        catalog: LicenseCatalog = DEFAULT_CATALOG,
        include_dev: bool = False,
    ) -> None:
        self.client = client
        self.catalog = catalog
        self.include_dev = include_dev

    def is_compatible(self, filename: str) -> bool:
        return filename == "package.json"

    def requirements(self, manifest: bytes) -> List[Requirement]:
        data = _load_json(manifest, "package.json")
        blocks = [data.get("dependencies")]
        if self.include_dev:
            blocks.append(data.get("devDependencies"))

        # A package listed in both blocks keeps its runtime version.
        versions: dict[str, str] = {}
        for block in blocks:
            if not block:
                continue
            if not isinstance(block, dict):
                raise ManifestParseError("unable to parse package.json: dependency blocks must be objects")
            for name, spec in block.items():
                versions.setdefault(name, normalize_npm_version(spec))
        return [Requirement(name, "==", version) for name, version in versions.items()]

    def dependencies(self, manifest: bytes) -> DependencyResult:
        return resolve_requirements(self.requirements(manifest), self.client, self.catalog)


class GoDepDeper:
    """Handles ``Gopkg.lock`` files written by the ``dep`` tool."""

    name = "dep"

    def __init__(self, license_getter: LicenseFetcher, catalog: LicenseCatalog = DEFAULT_CATALOG) -> None:
        self.license_getter = license_getter
        self.catalog = catalog

    def is_compatible(self, filename: str) -> bool:
        return filename == "Gopkg.lock"

    def requirements(self, manifest: bytes) -> List[Requirement]:
        try:
            data = tomllib.loads(manifest.decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            raise ManifestParseError(f"unable to parse Gopkg.lock: {exc}") from exc

        reqs: List[Requirement] = []
        for project in data.get("projects", []) or []:
            name = project.get("name") if isinstance(project, dict) else None
            if not name:
                raise ManifestParseError("unable to parse Gopkg.lock: project entry without a name")
            ref = project.get("version") or project.get("revision") or ""
            reqs.append(Requirement(name, "==" if ref else "", ref))
        return reqs

    def dependencies(self, manifest: bytes) -> DependencyResult:
        return resolve_requirements(self.requirements(manifest), self.license_getter, self.catalog)


class GovendorDeper:
    """Handles ``vendor/vendor.json`` files written by ``govendor``."""

    name = "govendor"

    def __init__(self, license_getter: LicenseFetcher, catalog: LicenseCatalog = DEFAULT_CATALOG) -> None:
        self.license_getter = license_getter
        self.catalog = catalog

    def is_compatible(self, filename: str) -> bool:
        return filename == "vendor.json"

    def requirements(self, manifest: bytes) -> List[Requirement]:
        data = _load_json(manifest, "vendor.json")
        # Sub-packages of one repository share its license, so only the root is looked up.
        roots: dict[str, str] = {}
        for package in data.get("package", []) or []:
            path = package.get("path") if isinstance(package, dict) else None
            if not path:
                raise ManifestParseError("unable to parse vendor.json: package entry without a path")
            roots.setdefault(go_repository_root(path), package.get("revision") or "")
        return [Requirement(root, "==" if ref else "", ref) for root, ref in roots.items()]

    def dependencies(self, manifest: bytes) -> DependencyResult:
        return resolve_requirements(self.requirements(manifest), self.license_getter, self.catalog)


def default_depers(
    catalog: LicenseCatalog = DEFAULT_CATALOG,
    npm_dev_deps: bool = False,
    timeout: Optional[float] = None,
) -> List[Deper]:
    """Build the dispatch list in priority order: npm, govendor, dep, pip."""

    go_licenses = GoLicenseGetter(GitHubClient(timeout=timeout))
    return [
        NpmDeper(NpmRegistryClient(timeout=timeout), catalog, include_dev=npm_dev_deps),
        GovendorDeper(go_licenses, catalog),
        GoDepDeper(go_licenses, catalog),
        PipDeper(PyPIClient(timeout=timeout), catalog),
    ]


def select_deper(path: str, depers: Sequence[Deper]) -> Deper:
    filename = PurePath(path).name
    for deper in depers:
        if deper.is_compatible(filename):
            return deper
    raise UnsupportedManifestError(f"diligent does not know how to process '{filename}' files")
