import sys
from pathlib import Path

import pytest

# Ensure src package is importable without installation
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))


class FakeFetcher:
    """Serves licenses from a dict; exceptions in the dict are raised instead."""

    def __init__(self, licenses):
        self.licenses = licenses
        self.calls = []

    def fetch_license(self, name, version=""):
        self.calls.append((name, version))
        value = self.licenses.get(name, "")
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
