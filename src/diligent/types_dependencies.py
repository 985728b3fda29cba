from __future__ import annotations

from dataclasses import dataclass

from .types_license import License


@dataclass(frozen=True)
class Dep:
    """A dependency whose license was resolved against the catalog."""

    name: str
    license: License

    @property
    def license_identifier(self) -> str:
        return self.license.identifier


@dataclass(frozen=True)
class DependencyWarning:
    """A dependency that could not be resolved. Never fatal on its own."""

    subject: str
    reason: str

    def __str__(self) -> str:
        return f"{self.subject}: {self.reason}"
