from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, List, Mapping, Sequence, Tuple

from .types_license import License, LicenseCategory, UnknownLicenseError


ALL_CATEGORIES_TOKEN = "all"

# Categories a whitelist may name. "other" is not one of them.
WHITELIST_CATEGORIES = (
    LicenseCategory.PERMISSIVE,
    LicenseCategory.COPYLEFT,
    LicenseCategory.COPYLEFT_LIMITED,
    LicenseCategory.FREE_RESTRICTED,
    LicenseCategory.PROPRIETARY_FREE,
    LicenseCategory.PUBLIC_DOMAIN,
)

CATEGORY_TOKENS = (ALL_CATEGORIES_TOKEN,) + tuple(category.value for category in WHITELIST_CATEGORIES)


_P = LicenseCategory.PERMISSIVE
_C = LicenseCategory.COPYLEFT
_CL = LicenseCategory.COPYLEFT_LIMITED
_FR = LicenseCategory.FREE_RESTRICTED
_PF = LicenseCategory.PROPRIETARY_FREE
_PD = LicenseCategory.PUBLIC_DOMAIN
_O = LicenseCategory.OTHER

KNOWN_LICENSES: Tuple[Tuple[str, str, LicenseCategory], ...] = (
    ("0BSD", "BSD Zero Clause License", _P),
    ("AFL-3.0", "Academic Free License v3.0", _P),
    ("Apache-1.0", "Apache License 1.0", _P),
    ("Apache-1.1", "Apache License 1.1", _P),
    ("Apache-2.0", "Apache License 2.0", _P),
    ("Artistic-2.0", "Artistic License 2.0", _P),
    ("BSD-1-Clause", "BSD 1-Clause License", _P),
    ("BSD-2-Clause", 'BSD 2-Clause "Simplified" License', _P),
    ("BSD-2-Clause-Patent", "BSD-2-Clause Plus Patent License", _P),
    ("BSD-3-Clause", 'BSD 3-Clause "New" or "Revised" License', _P),
    ("BSD-3-Clause-Clear", "BSD 3-Clause Clear License", _P),
    ("BSD-4-Clause", 'BSD 4-Clause "Original" or "Old" License', _P),
    ("BSL-1.0", "Boost Software License 1.0", _P),
    ("ECL-2.0", "Educational Community License v2.0", _P),
    ("HPND", "Historical Permission Notice and Disclaimer", _P),
    ("ISC", "ISC License", _P),
    ("MIT", "MIT License", _P),
    ("MIT-0", "MIT No Attribution", _P),
    ("NCSA", "University of Illinois/NCSA Open Source License", _P),
    ("OpenSSL", "OpenSSL License", _P),
    ("PHP-3.01", "PHP License v3.01", _P),
    ("PostgreSQL", "PostgreSQL License", _P),
    ("PSF-2.0", "Python Software Foundation License 2.0", _P),
    ("Python-2.0", "Python License 2.0", _P),
    ("Unicode-DFS-2016", "Unicode License Agreement - Data Files and Software (2016)", _P),
    ("UPL-1.0", "Universal Permissive License v1.0", _P),
    ("W3C", "W3C Software Notice and License (2002-12-31)", _P),
    ("WTFPL", "Do What The F*ck You Want To Public License", _P),
    ("X11", "X11 License", _P),
    ("Zlib", "zlib License", _P),
    ("ZPL-2.1", "Zope Public License 2.1", _P),
    ("AGPL-1.0", "Affero General Public License v1.0", _C),
    ("AGPL-3.0", "GNU Affero General Public License v3.0", _C),
    ("CC-BY-SA-4.0", "Creative Commons Attribution Share Alike 4.0 International", _C),
    ("EUPL-1.1", "European Union Public License 1.1", _C),
    ("EUPL-1.2", "European Union Public License 1.2", _C),
    ("GPL-1.0", "GNU General Public License v1.0", _C),
    ("GPL-2.0", "GNU General Public License v2.0", _C),
    ("GPL-3.0", "GNU General Public License v3.0", _C),
    ("OSL-3.0", "Open Software License 3.0", _C),
    ("RPL-1.5", "Reciprocal Public License 1.5", _C),
    ("Sleepycat", "Sleepycat License", _C),
    ("APSL-2.0", "Apple Public Source License 2.0", _CL),
    ("Artistic-1.0", "Artistic License 1.0", _CL),
    ("CDDL-1.0", "Common Development and Distribution License 1.0", _CL),
    ("CDDL-1.1", "Common Development and Distribution License 1.1", _CL),
    ("CPL-1.0", "Common Public License 1.0", _CL),
    ("EPL-1.0", "Eclipse Public License 1.0", _CL),
    ("EPL-2.0", "Eclipse Public License 2.0", _CL),
    ("ErlPL-1.1", "Erlang Public License v1.1", _CL),
    ("LGPL-2.0", "GNU Library General Public License v2 only", _CL),
    ("LGPL-2.1", "GNU Lesser General Public License v2.1", _CL),
    ("LGPL-3.0", "GNU Lesser General Public License v3.0", _CL),
    ("MPL-1.0", "Mozilla Public License 1.0", _CL),
    ("MPL-1.1", "Mozilla Public License 1.1", _CL),
    ("MPL-2.0", "Mozilla Public License 2.0", _CL),
    ("MS-RL", "Microsoft Reciprocal License", _CL),
    ("CC-BY-NC-4.0", "Creative Commons Attribution Non Commercial 4.0 International", _FR),
    ("CC-BY-NC-SA-4.0", "Creative Commons Attribution Non Commercial Share Alike 4.0 International", _FR),
    ("CC-BY-ND-4.0", "Creative Commons Attribution No Derivatives 4.0 International", _FR),
    ("JSON", "JSON License", _FR),
    ("BUSL-1.1", "Business Source License 1.1", _PF),
    ("Elastic-2.0", "Elastic License 2.0", _PF),
    ("PolyForm-Noncommercial-1.0.0", "PolyForm Noncommercial License 1.0.0", _PF),
    ("SSPL-1.0", "Server Side Public License, v 1", _PF),
    ("CC0-1.0", "Creative Commons Zero v1.0 Universal", _PD),
    ("PDDL-1.0", "Open Data Commons Public Domain Dedication & License 1.0", _PD),
    ("Unlicense", "The Unlicense", _PD),
    ("Beerware", "Beerware License", _O),
    ("Vim", "Vim License", _O),
)


class WhitelistConfigError(ValueError):
    pass


class LicenseCatalog:
    """An immutable, ordered set of known licenses.

    Build one at startup and hand it to the components that resolve or
    validate licenses. Fixture catalogs can be built the same way in tests.
    """

    __slots__ = ("_licenses", "_by_identifier")

    def __init__(self, licenses: Iterable[License]) -> None:
        ordered: List[License] = []
        index: dict[str, License] = {}
        for lic in licenses:
            if lic.identifier in index:
                raise ValueError(f"duplicate license identifier in catalog: {lic.identifier}")
            index[lic.identifier] = lic
            ordered.append(lic)
        self._licenses: Tuple[License, ...] = tuple(ordered)
        self._by_identifier: Mapping[str, License] = MappingProxyType(index)

    def __iter__(self):
        return iter(self._licenses)

    def __len__(self) -> int:
        return len(self._licenses)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._by_identifier

    @property
    def licenses(self) -> Tuple[License, ...]:
        return self._licenses

    def resolve_identifier(self, identifier: str) -> License:
        """Exact, case-sensitive lookup; raises ``UnknownLicenseError``."""

        try:
            return self._by_identifier[identifier]
        except KeyError:
            raise UnknownLicenseError(identifier) from None

    def identifiers_in(self, category: LicenseCategory) -> List[str]:
        return [lic.identifier for lic in self._licenses if lic.category is category]

    def expand_category_tokens(self, tokens: Sequence[str]) -> List[str]:
        """Replace category names with the identifiers in that category.

        ``all`` expands to every identifier. Other tokens are kept as literal
        identifiers in their original position. Repeats are dropped, keeping
        the first occurrence.
        """

        expanded: List[str] = []
        seen: set[str] = set()

        def _add(identifier: str) -> None:
            if identifier not in seen:
                seen.add(identifier)
                expanded.append(identifier)

        for token in tokens:
            if token == ALL_CATEGORIES_TOKEN:
                for lic in self._licenses:
                    _add(lic.identifier)
            elif token in CATEGORY_TOKENS:
                for identifier in self.identifiers_in(LicenseCategory(token)):
                    _add(identifier)
            else:
                _add(token)
        return expanded

    def build_whitelist(self, tokens: Sequence[str], strict: bool = True) -> frozenset[str]:
        """Expand whitelist tokens into a set of license identifiers.

        With ``strict`` every literal must be a catalog identifier, otherwise
        ``WhitelistConfigError`` is raised naming the offenders. Lenient mode
        keeps unknown literals; they never match a resolved license.
        """

        identifiers = self.expand_category_tokens([token.strip() for token in tokens if token.strip()])
        if strict:
            unknown = [identifier for identifier in identifiers if identifier not in self]
            if unknown:
                raise WhitelistConfigError(
                    "unknown license identifiers or categories in whitelist: "
                    + ", ".join(unknown)
                    + f". Supported categories: {', '.join(CATEGORY_TOKENS)}"
                )
        return frozenset(identifiers)


DEFAULT_CATALOG = LicenseCatalog(
    License(identifier, name, category) for identifier, name, category in KNOWN_LICENSES
)
