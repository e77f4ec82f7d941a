"""Merged settings over a chain of config files, and the loaders building it."""
from __future__ import annotations

import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from pathlib import Path

from .constants import ADD_V3_TRACK_FILE, DEFAULT_CONFIG, DEFAULT_SETTINGS_FILE_NAME, EMPTY_CONFIG
from .discovery import additional_user_config_files, machine_wide_config_files, settings_files_in_hierarchy
from .errors import InvalidSettingOperation, UnsupportedSettingOperation
from .events import EventHook
from .items import ClearItem, SettingItem
from .loading_context import SettingsLoadingContext
from .paths import get_file_name_and_root, machine_wide_settings_base_dir, user_settings_dir
from .sections import SettingSection, VirtualSettingSection
from .settings_file import SettingsFile

logger = logging.getLogger(__name__)


def _check_args(section_name: str, item) -> None:
    if not section_name:
        raise ValueError("section_name must not be empty")
    if item is None:
        raise TypeError("item must not be None")


class BaseSettings(ABC):
    """Read and write access to NuGet settings."""

    def __init__(self) -> None:
        self.settings_changed = EventHook()

    @abstractmethod
    def get_section(self, name: str) -> SettingSection | None:
        """Return a detached copy of the merged section *name*."""

    @abstractmethod
    def create_section(self, section: SettingSection) -> None: ...

    @abstractmethod
    def add_or_update(self, section_name: str, item: SettingItem) -> None: ...

    @abstractmethod
    def remove(self, section_name: str, item: SettingItem) -> bool: ...

    @abstractmethod
    def save_to_disk(self) -> None: ...

    @abstractmethod
    def get_config_file_paths(self) -> list[Path]: ...

    @abstractmethod
    def get_config_roots(self) -> list[Path]: ...


class Settings(BaseSettings):
    """Settings merged from a priority-ordered chain of files.

    Reads see every file, the most authoritative file winning. Writes go to
    the file that owns the item, or for new items to the file picked by
    :meth:`get_output_settings_file_for_section`.
    """

    def __init__(self, settings_head: SettingsFile):
        super().__init__()
        if settings_head is None:
            raise TypeError("settings_head must not be None")
        self._files = self._chain(settings_head)
        self._computed_sections: dict[str, SettingSection] = {}
        for settings_file in self.priority:
            settings_file.changed.subscribe(self._on_file_changed)
        self._compute()

    @classmethod
    def from_files(cls, files: Sequence[SettingsFile]) -> "Settings":
        """Chain *files*, given least authoritative first."""
        if not files:
            raise ValueError("files must not be empty")
        SettingsFile.connect_settings_files_linked_list(files)
        return cls(files[-1])

    @classmethod
    def from_directory(
        cls,
        root: str | Path,
        file_name: str = DEFAULT_SETTINGS_FILE_NAME,
        is_machine_wide: bool = False,
    ) -> "Settings":
        return cls(SettingsFile(root, file_name, is_machine_wide))

    def __repr__(self) -> str:
        return f"<Settings {[str(p) for p in self.get_config_file_paths()]}>"

    @staticmethod
    def _chain(head: SettingsFile) -> list[SettingsFile]:
        # Snapshot of the chain; files shared through a loading context may
        # be relinked by later loads.
        files: list[SettingsFile] = []
        seen: set[str] = set()
        visited: set[int] = set()
        node: SettingsFile | None = head
        while node is not None and id(node) not in visited:
            visited.add(id(node))
            key = os.path.normcase(str(node.config_file_path))
            if key not in seen:
                seen.add(key)
                files.append(node)
            node = node.next
        return files

    @property
    def priority(self) -> Iterator[SettingsFile]:
        """Files from most to least authoritative, each path once."""
        return iter(self._files)

    # -- merging -----------------------------------------------------------
    def _compute(self) -> None:
        computed: dict[str, SettingSection] = {}
        for settings_file in reversed(list(self.priority)):
            settings_file.merge_sections_into(computed)
        self._computed_sections = computed
        logger.debug("Computed %d sections from %s", len(computed), self)

    def _on_file_changed(self, _settings_file: SettingsFile | None = None) -> None:
        self._compute()
        self.settings_changed.emit(self)

    # -- reads -------------------------------------------------------------
    def get_section(self, name: str) -> SettingSection | None:
        section = self._computed_sections.get(name)
        return section.clone() if section is not None else None

    def get_config_file_paths(self) -> list[Path]:
        return [f.config_file_path for f in self.priority]

    def get_config_roots(self) -> list[Path]:
        roots: list[Path] = []
        for settings_file in self.priority:
            if settings_file.directory_path not in roots:
                roots.append(settings_file.directory_path)
        return roots

    def get_output_settings_file_for_section(self, section_name: str) -> SettingsFile | None:
        """Pick the file that receives new items of *section_name*.

        The most authoritative writable file whose own section has a
        ``<clear />`` wins; otherwise the least authoritative writable file.
        """
        writable = [f for f in self.priority if f.is_writable]
        for settings_file in writable:
            section = settings_file.get_section(section_name)
            if section is not None and ClearItem() in section:
                return settings_file
        return writable[-1] if writable else None

    # -- writes ------------------------------------------------------------
    def add_or_update(self, section_name: str, item: SettingItem) -> None:
        _check_args(section_name, item)
        section = self._computed_sections.get(section_name)
        if isinstance(section, VirtualSettingSection) and item in section and section.update(item):
            self._on_file_changed()
            return
        output = self.get_output_settings_file_for_section(section_name)
        if output is None:
            raise InvalidSettingOperation("There are no writable config files.")
        output.add_or_update(section_name, item)

    def create_section(self, section: SettingSection) -> None:
        if section is None:
            raise TypeError("section must not be None")
        if section.name in self._computed_sections:
            for item in section.items:
                self.add_or_update(section.name, item)
            return
        output = self.get_output_settings_file_for_section(section.name)
        if output is None:
            raise InvalidSettingOperation("There are no writable config files.")
        output.create_section(section)

    def remove(self, section_name: str, item: SettingItem) -> bool:
        _check_args(section_name, item)
        section = self._computed_sections.get(section_name)
        if not isinstance(section, VirtualSettingSection):
            return False
        removed = section.remove(item)
        if removed:
            self._on_file_changed()
        return removed

    def save_to_disk(self) -> None:
        for settings_file in self.priority:
            settings_file.save_to_disk()


class NullSettings(BaseSettings):
    """Settings used when no config file could be loaded."""

    def get_section(self, name: str) -> SettingSection | None:
        return None

    def _refuse(self) -> None:
        raise InvalidSettingOperation("Settings cannot be modified because no config file was loaded.")

    def create_section(self, section: SettingSection) -> None:
        self._refuse()

    def add_or_update(self, section_name: str, item: SettingItem) -> None:
        self._refuse()

    def remove(self, section_name: str, item: SettingItem) -> bool:
        self._refuse()
        return False

    def save_to_disk(self) -> None:
        pass

    def get_config_file_paths(self) -> list[Path]:
        return []

    def get_config_roots(self) -> list[Path]:
        return []


class ImmutableSettings(BaseSettings):
    """Read-only view over other settings."""

    def __init__(self, settings: BaseSettings):
        super().__init__()
        self._settings = settings
        settings.settings_changed.subscribe(lambda _s: self.settings_changed.emit(self))

    def get_section(self, name: str) -> SettingSection | None:
        return self._settings.get_section(name)

    def _refuse(self, operation: str) -> None:
        raise UnsupportedSettingOperation(f"'{operation}' is not supported on immutable settings.")

    def create_section(self, section: SettingSection) -> None:
        self._refuse("create_section")

    def add_or_update(self, section_name: str, item: SettingItem) -> None:
        self._refuse("add_or_update")

    def remove(self, section_name: str, item: SettingItem) -> bool:
        self._refuse("remove")
        return False

    def save_to_disk(self) -> None:
        self._refuse("save_to_disk")

    def get_config_file_paths(self) -> list[Path]:
        return self._settings.get_config_file_paths()

    def get_config_roots(self) -> list[Path]:
        return self._settings.get_config_roots()


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _read_settings(
    path: str | Path,
    context: SettingsLoadingContext | None = None,
    is_machine_wide: bool = False,
    is_read_only: bool = False,
    default_content: bytes = DEFAULT_CONFIG,
) -> SettingsFile:
    if context is not None:
        return context.get_or_create_settings_file(
            path, is_machine_wide, is_read_only, default_content=default_content
        )
    file_name, directory = get_file_name_and_root(None, path)
    return SettingsFile(directory, file_name, is_machine_wide, is_read_only, default_content=default_content)


def _from_ascending(files: list[SettingsFile]) -> BaseSettings:
    """Wrap *files* (least authoritative first) in :class:`Settings`.

    When a path shows up twice only its most authoritative occurrence is kept.
    """
    unique: list[SettingsFile] = []
    seen: set[str] = set()
    for settings_file in reversed(files):
        key = os.path.normcase(str(settings_file.config_file_path))
        if key not in seen:
            seen.add(key)
            unique.append(settings_file)
    if not unique:
        return NullSettings()
    unique.reverse()
    return Settings.from_files(unique)


def _load_user_wide_file(user_dir: Path, context: SettingsLoadingContext | None) -> SettingsFile:
    path = user_dir / DEFAULT_SETTINGS_FILE_NAME
    track_file = user_dir / ADD_V3_TRACK_FILE
    if path.exists():
        return _read_settings(path, context)
    if track_file.exists():
        # The default feed was written once already and later removed.
        logger.debug("Creating empty user config %s", path)
        return _read_settings(path, context, default_content=EMPTY_CONFIG)
    settings_file = _read_settings(path, context)
    track_file.touch()
    return settings_file


def _load_user_specific_settings(
    root: str | Path | None,
    config_file_name: str | None,
    user_settings_directory: str | Path | None,
    context: SettingsLoadingContext | None,
) -> list[SettingsFile]:
    if config_file_name:
        path = Path(config_file_name)
        if not path.is_absolute():
            path = Path(root if root is not None else os.getcwd()) / path
        if not path.is_file():
            raise InvalidSettingOperation(f"File '{path}' does not exist.")
        return [_read_settings(path, context)]
    user_dir = Path(user_settings_directory) if user_settings_directory is not None else user_settings_dir()
    user_file = _load_user_wide_file(user_dir, context)
    additional = [
        _read_settings(p, context, is_read_only=True)
        for p in additional_user_config_files(user_dir)
    ]
    return [*reversed(additional), user_file]


def load_settings(
    root: str | Path | None,
    config_file_name: str | None = None,
    machine_wide_settings: "MachineWideSettings | None" = None,
    load_user_wide_settings: bool = True,
    user_settings_directory: str | Path | None = None,
    settings_loading_context: SettingsLoadingContext | None = None,
) -> BaseSettings:
    """Load the settings that apply to *root*.

    Files from least to most authoritative: machine-wide, additional
    user-wide, user-wide, then every config from the file system root down
    to *root*. With *config_file_name* only that file is used as the user
    config and neither the directory hierarchy nor machine-wide files are
    read.
    """
    context = settings_loading_context
    files: list[SettingsFile] = []
    if machine_wide_settings is not None and not config_file_name:
        machine = machine_wide_settings.settings
        if isinstance(machine, Settings):
            files.extend(
                _read_settings(f.config_file_path, context, is_machine_wide=True)
                for f in reversed(list(machine.priority))
            )
    if load_user_wide_settings:
        files.extend(_load_user_specific_settings(root, config_file_name, user_settings_directory, context))
    if root is not None and not config_file_name:
        files.extend(_read_settings(p, context) for p in settings_files_in_hierarchy(root))
    logger.debug("Loading settings for %s from %s", root, [f.config_file_path for f in files])
    return _from_ascending(files)


def load_default_settings(
    root: str | Path | None,
    config_file_name: str | None = None,
    machine_wide_settings: "MachineWideSettings | None" = None,
    settings_loading_context: SettingsLoadingContext | None = None,
    user_settings_directory: str | Path | None = None,
) -> BaseSettings:
    return load_settings(
        root,
        config_file_name,
        machine_wide_settings,
        load_user_wide_settings=True,
        user_settings_directory=user_settings_directory,
        settings_loading_context=settings_loading_context,
    )


def load_machine_wide_settings(
    root: str | Path,
    *paths: str,
    settings_loading_context: SettingsLoadingContext | None = None,
) -> BaseSettings:
    """Load every ``*.config`` under ``root/paths...`` as machine-wide files."""
    files = [
        _read_settings(p, settings_loading_context, is_machine_wide=True)
        for p in machine_wide_config_files(root, *paths)
    ]
    return _from_ascending(files)


def load_settings_given_config_paths(
    config_paths: Sequence[str | Path],
    settings_loading_context: SettingsLoadingContext | None = None,
) -> BaseSettings:
    """Load exactly *config_paths*, the first one being the most authoritative."""
    files = [_read_settings(p, settings_loading_context) for p in reversed(list(config_paths))]
    return _from_ascending(files)


def load_immutable_settings_given_config_paths(
    config_paths: Sequence[str | Path],
    settings_loading_context: SettingsLoadingContext | None = None,
) -> ImmutableSettings:
    return ImmutableSettings(load_settings_given_config_paths(config_paths, settings_loading_context))


class MachineWideSettings:
    """Machine-wide settings, loaded on first use."""

    def __init__(self, root: str | Path | None = None, *paths: str):
        self.root = Path(root) if root is not None else machine_wide_settings_base_dir()
        self.paths = paths
        self._settings: BaseSettings | None = None
        self._lock = threading.Lock()

    @property
    def settings(self) -> BaseSettings:
        with self._lock:
            if self._settings is None:
                self._settings = load_machine_wide_settings(self.root, *self.paths)
            return self._settings
