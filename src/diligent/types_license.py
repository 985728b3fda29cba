from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LicenseCategory(Enum):
    """License families, valued by the token used to whitelist them."""

    PERMISSIVE = "permissive"
    COPYLEFT = "copyleft"
    COPYLEFT_LIMITED = "copyleft-limited"
    FREE_RESTRICTED = "free-restricted"
    PROPRIETARY_FREE = "proprietary-free"
    PUBLIC_DOMAIN = "public-domain"
    OTHER = "other"


@dataclass(frozen=True)
class License:
    identifier: str
    name: str
    category: LicenseCategory


class UnknownLicenseError(KeyError):
    def __init__(self, identifier: str) -> None:
        super().__init__(identifier)
        self.identifier = identifier

    def __str__(self) -> str:
        return f"license identifier {self.identifier} is not known to diligent"
