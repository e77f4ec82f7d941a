from __future__ import annotations

from pathlib import Path

import pytest
from lxml import etree

from nuget_settings.errors import InvalidSettingOperation, NuGetConfigurationError
from nuget_settings.locking import execute_synchronized, lock_file_for, locked


def test_lock_file_is_stable_per_path(tmp_path: Path) -> None:
    a = lock_file_for(tmp_path / "NuGet.Config")
    b = lock_file_for(tmp_path / "." / "NuGet.Config")
    c = lock_file_for(tmp_path / "other.config")
    assert a == b
    assert a != c
    assert a.parent.name == "nuget-settings-locks"


def test_locked_creates_lock_file(tmp_path: Path) -> None:
    target = tmp_path / "NuGet.Config"
    with locked(target):
        assert lock_file_for(target).exists()
    # re-entrant use after release
    with locked(target, exclusive=False):
        pass


def test_execute_synchronized_returns_result(tmp_path: Path) -> None:
    assert execute_synchronized(tmp_path / "x.config", lambda: 42) == 42


def _raise(exc: Exception):
    def op():
        raise exc
    return op


def test_permission_error_is_reported_with_path(tmp_path: Path) -> None:
    path = tmp_path / "NuGet.Config"
    with pytest.raises(NuGetConfigurationError) as info:
        execute_synchronized(path, _raise(PermissionError("denied")))
    assert "unauthorized access" in str(info.value)
    assert info.value.path == path


def test_invalid_operation_is_reported_with_path(tmp_path: Path) -> None:
    path = tmp_path / "NuGet.Config"
    with pytest.raises(NuGetConfigurationError) as info:
        execute_synchronized(path, _raise(InvalidSettingOperation("Bad thing.")))
    assert str(info.value) == f"Bad thing. Path: '{path}'."


def test_xml_error_is_reported_with_path(tmp_path: Path) -> None:
    path = tmp_path / "NuGet.Config"
    with pytest.raises(NuGetConfigurationError, match="not valid XML"):
        execute_synchronized(path, lambda: etree.fromstring(b"<configuration>"))


def test_other_errors_propagate(tmp_path: Path) -> None:
    with pytest.raises(KeyError):
        execute_synchronized(tmp_path / "x.config", _raise(KeyError("k")))
