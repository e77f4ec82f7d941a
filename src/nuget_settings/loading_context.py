from __future__ import annotations

import os
import threading
from pathlib import Path

from .constants import DEFAULT_CONFIG
from .settings_file import SettingsFile


class SettingsLoadingContext:
    """Cache of parsed config files shared by several loads.

    A file is read once per context; later requests for the same path get
    the same :class:`SettingsFile` instance.
    """

    def __init__(self) -> None:
        self._files: dict[str, SettingsFile] = {}
        self._lock = threading.Lock()

    def get_or_create_settings_file(
        self,
        path: str | Path,
        is_machine_wide: bool = False,
        is_read_only: bool = False,
        *,
        default_content: bytes = DEFAULT_CONFIG,
    ) -> SettingsFile:
        """Return the cached file for *path*, loading it on first use.

        *default_content* is only used when the file has to be created.
        """
        full = os.path.abspath(os.fspath(path))
        key = os.path.normcase(full)
        with self._lock:
            cached = self._files.get(key)
            if cached is None:
                directory, name = os.path.split(full)
                cached = SettingsFile(
                    directory, name, is_machine_wide, is_read_only, default_content=default_content
                )
                self._files[key] = cached
            return cached

    def __len__(self) -> int:
        return len(self._files)
