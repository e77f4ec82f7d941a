"""Find config files on disk.

Only paths are produced here; turning them into :class:`SettingsFile`
objects is left to :mod:`nuget_settings.settings`.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from .constants import DEFAULT_SETTINGS_FILE_NAME, MACHINE_WIDE_CONFIG_EXTENSION
from .paths import additional_user_config_dir

logger = logging.getLogger(__name__)

if os.name == "nt":  # pragma: no cover - platform specific
    # Case-insensitive file system: one probe finds every casing.
    ORDERED_SETTINGS_FILE_NAMES: tuple[str, ...] = (DEFAULT_SETTINGS_FILE_NAME,)
else:
    ORDERED_SETTINGS_FILE_NAMES = ("nuget.config", "NuGet.config", DEFAULT_SETTINGS_FILE_NAME)


def walk_up(start: Path) -> Iterable[Path]:
    cur = start
    while True:
        yield cur
        if cur.parent == cur:
            break
        cur = cur.parent


def settings_file_name_in(directory: Path) -> str | None:
    """Return the first known config file name present in *directory*."""
    for name in ORDERED_SETTINGS_FILE_NAMES:
        if (directory / name).is_file():
            return name
    return None


def settings_files_in_hierarchy(root: str | Path) -> list[Path]:
    """Return config files from *root* up to the file system root.

    The list is ordered topmost directory first, *root* itself last.
    """
    found: list[Path] = []
    for directory in walk_up(Path(os.path.abspath(root))):
        name = settings_file_name_in(directory)
        if name is not None:
            found.append(directory / name)
    found.reverse()
    logger.debug("Config files above %s: %s", root, found)
    return found


def _config_files_in(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    files = [
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() == MACHINE_WIDE_CONFIG_EXTENSION
    ]
    return sorted(files, key=lambda p: os.path.normcase(p.name))


def machine_wide_config_files(root: str | Path, *paths: str) -> list[Path]:
    """Collect ``*.config`` files under ``root/paths[0]/paths[1]/...``.

    Every directory from the deepest one up to *root* contributes its files.
    The result is ordered from least to most authoritative: *root*
    (broadest) first, the deepest directory last. Inside one directory a
    file sorting earlier by name is more authoritative.
    """
    root = Path(root)
    levels = [root]
    for part in paths:
        levels.append(levels[-1] / part)
    found: list[Path] = []
    for directory in levels:
        found.extend(reversed(_config_files_in(directory)))
    return found


def additional_user_config_files(user_dir: str | Path) -> list[Path]:
    """Return the read-only extra configs stored beside the user-wide one.

    Sorted by name; a file sorting earlier is more authoritative.
    """
    directory = additional_user_config_dir(user_dir)
    return [
        p for p in _config_files_in(directory)
        if os.path.normcase(p.name) != os.path.normcase(DEFAULT_SETTINGS_FILE_NAME)
    ]
