from __future__ import annotations

import os
import re
from typing import Any, Optional, Tuple
from urllib.parse import quote

from packaging.utils import canonicalize_name
import requests  # type: ignore[import-untyped]

from .log import get_logger


DEFAULT_PYPI_URL = "https://pypi.org"
DEFAULT_NPM_URL = "https://registry.npmjs.org"
DEFAULT_GITHUB_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 10.0

# Vanity import hosts that are served from a GitHub repository.
GO_VANITY_REPOSITORIES = {
    "google.golang.org/grpc": ("grpc", "grpc-go"),
    "google.golang.org/protobuf": ("protocolbuffers", "protobuf-go"),
    "google.golang.org/genproto": ("googleapis", "go-genproto"),
    "google.golang.org/api": ("googleapis", "google-api-go-client"),
    "cloud.google.com/go": ("googleapis", "google-cloud-go"),
}

_GOPKG_VERSION = re.compile(r"\.v\d+$")

log = get_logger(__name__)


class MetadataFetchError(RuntimeError):
    """Raised when registry metadata could not be fetched or understood."""


def default_timeout() -> float:
    env_timeout = os.environ.get("DILIGENT_HTTP_TIMEOUT")
    try:
        return float(env_timeout) if env_timeout is not None else DEFAULT_TIMEOUT
    except ValueError:
        return DEFAULT_TIMEOUT


class _JSONClient:
    default_url = ""
    url_env = ""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[Any] = None,
    ) -> None:
        target = base_url or os.environ.get(self.url_env) or self.default_url
        self.base_url = target.rstrip("/")
        self.timeout = timeout or default_timeout()
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def _get_json(self, url: str) -> dict:
        log.debug("GET %s", url)
        try:
            response = self.session.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise MetadataFetchError(f"request to {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise MetadataFetchError(f"{url} returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise MetadataFetchError(f"{url} did not return valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise MetadataFetchError(f"{url} returned an unexpected JSON document")
        return payload


class PyPIClient(_JSONClient):
    default_url = DEFAULT_PYPI_URL
    url_env = "DILIGENT_PYPI_URL"

    def project_metadata(self, name: str, version: str = "") -> dict:
        parts = [self.base_url, "pypi", quote(canonicalize_name(name), safe="")]
        if version:
            parts.append(quote(version, safe=""))
        return self._get_json("/".join(parts) + "/json")

    def fetch_license(self, name: str, version: str = "") -> str:
        info = self.project_metadata(name, version).get("info") or {}
        license_value = str(info.get("license") or "").strip()
        if not license_value:
            license_value = str(info.get("license_expression") or "").strip()
        return license_value


class NpmRegistryClient(_JSONClient):
    default_url = DEFAULT_NPM_URL
    url_env = "DILIGENT_NPM_URL"

    def package_metadata(self, name: str, version: str = "") -> dict:
        return self._get_json(f"{self.base_url}/{quote(name, safe='@')}/{quote(version or 'latest', safe='')}")

    def fetch_license(self, name: str, version: str = "") -> str:
        payload = self.package_metadata(name, version)
        license_value = payload.get("license")
        if not license_value:
            legacy = payload.get("licenses") or []
            license_value = legacy[0] if isinstance(legacy, list) and legacy else None
        if isinstance(license_value, dict):
            license_value = license_value.get("type")
        return str(license_value or "").strip()


class GitHubClient(_JSONClient):
    default_url = DEFAULT_GITHUB_URL
    url_env = "DILIGENT_GITHUB_URL"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[Any] = None,
        token: Optional[str] = None,
    ) -> None:
        super().__init__(base_url, timeout, session)
        self.token = token or os.environ.get("GITHUB_TOKEN")

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def repository_license(self, owner: str, repo: str, ref: str = "") -> str:
        url = f"{self.base_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/license"
        if ref:
            url += f"?ref={quote(ref, safe='')}"
        payload = self._get_json(url)
        spdx_id = str((payload.get("license") or {}).get("spdx_id") or "").strip()
        return "" if spdx_id == "NOASSERTION" else spdx_id


def go_repository_root(import_path: str) -> str:
    """Return the import path of the repository that hosts ``import_path``."""

    parts = import_path.strip("/").split("/")
    for vanity in GO_VANITY_REPOSITORIES:
        if import_path == vanity or import_path.startswith(vanity + "/"):
            return vanity
    if parts[0] == "gopkg.in" and len(parts) > 1 and _GOPKG_VERSION.search(parts[1]):
        return "/".join(parts[:2])
    return "/".join(parts[:3])


def github_repository(import_path: str) -> Tuple[str, str]:
    root = go_repository_root(import_path)
    if root in GO_VANITY_REPOSITORIES:
        return GO_VANITY_REPOSITORIES[root]

    parts = root.split("/")
    host = parts[0]
    if host == "github.com" and len(parts) == 3:
        return parts[1], parts[2]
    if host == "golang.org" and len(parts) == 3 and parts[1] == "x":
        return "golang", parts[2]
    if host == "gopkg.in":
        if len(parts) == 2:
            name = _GOPKG_VERSION.sub("", parts[1])
            return f"go-{name}", name
        if len(parts) == 3:
            return parts[1], _GOPKG_VERSION.sub("", parts[2])
    raise MetadataFetchError(f"unable to find a GitHub repository for import path '{import_path}'")


class GoLicenseGetter:
    """Looks up Go package licenses through the GitHub repository that hosts them."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def fetch_license(self, import_path: str, version: str = "") -> str:
        owner, repo = github_repository(import_path)
        return self.github.repository_license(owner, repo, version)
