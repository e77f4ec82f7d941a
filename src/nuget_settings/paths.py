"""Well-known directories and path helpers."""
from __future__ import annotations

import os
import re
from pathlib import Path

from platformdirs import site_config_dir as _sc, user_config_dir as _uc

from .constants import ADDITIONAL_USER_CONFIG_DIR

APP_NAME = "NuGet"
_URL_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]+://")

# ---------------------------------------------------------------------------
# User and machine directories
# ---------------------------------------------------------------------------

def user_settings_dir() -> Path:
    """Return the directory holding the user-wide ``NuGet.Config``.

    ``NUGET_USER_CONFIG_DIR`` overrides the platform default.
    """
    env = os.getenv("NUGET_USER_CONFIG_DIR")
    if env:
        return Path(env).expanduser().resolve()
    if os.name == "nt":  # pragma: no cover - platform specific
        return Path(_uc(appname=APP_NAME, appauthor=False, roaming=True)).resolve()
    return (Path.home() / ".nuget" / APP_NAME).resolve()


def additional_user_config_dir(user_dir: str | Path) -> Path:
    return Path(user_dir) / ADDITIONAL_USER_CONFIG_DIR


def machine_wide_settings_base_dir() -> Path:
    """Return the root under which machine-wide configs are searched.

    ``NUGET_MACHINE_CONFIG_DIR`` overrides the platform default.
    """
    env = os.getenv("NUGET_MACHINE_CONFIG_DIR")
    if env:
        return Path(env).expanduser().resolve()
    if os.name == "nt":  # pragma: no cover - platform specific
        program_files = os.getenv("ProgramFiles(x86)") or os.getenv("ProgramFiles", "C:\\Program Files")
        return Path(program_files) / APP_NAME / "Config"
    return Path(_sc(appname=APP_NAME, appauthor=False)) / "Config"

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

def resolve_path_from_origin(origin_directory: str | Path | None, path: str | None) -> str | None:
    """Resolve *path* relative to the directory of the file it came from.

    Empty values, URLs and absolute paths are returned unchanged.
    """
    if not path:
        return path
    if _URL_RE.match(path) or os.path.isabs(path) or origin_directory is None:
        return path
    return os.path.normpath(os.path.join(os.fspath(origin_directory), path))


def get_file_name_and_root(root: str | Path | None, settings_path: str | Path) -> tuple[str, Path]:
    """Split *settings_path* into ``(file_name, directory)``.

    A relative *settings_path* is taken relative to *root*.
    """
    settings_path = Path(settings_path)
    if not settings_path.is_absolute():
        base = Path(root) if root is not None else Path.cwd()
        settings_path = base / settings_path
    settings_path = Path(os.path.abspath(settings_path))
    return settings_path.name, settings_path.parent
