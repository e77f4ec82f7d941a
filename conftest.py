import sys
from pathlib import Path

import pytest

# Ensure 'src' directory is on sys.path for tests
PROJECT_ROOT = Path(__file__).resolve().parent
SRC_DIR = PROJECT_ROOT / 'src'
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@pytest.fixture(autouse=True)
def _isolated_nuget_dirs(tmp_path_factory, monkeypatch):
    """Keep user-wide and machine-wide lookups away from the real home."""
    base = tmp_path_factory.mktemp("nuget-home")
    monkeypatch.setenv("NUGET_USER_CONFIG_DIR", str(base / "user"))
    monkeypatch.setenv("NUGET_MACHINE_CONFIG_DIR", str(base / "machine"))
    return base
