from __future__ import annotations

"""Shared data structures for dependency license resolution.

The definitions live in domain-focused modules; this module keeps a single
stable import path for the public dataclasses.
"""

from .requirements_parser import Requirement
from .types_dependencies import Dep, DependencyWarning
from .types_license import License, LicenseCategory, UnknownLicenseError

__all__ = [
    "Dep",
    "DependencyWarning",
    "License",
    "LicenseCategory",
    "Requirement",
    "UnknownLicenseError",
]
