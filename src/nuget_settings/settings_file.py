"""One ``NuGet.Config`` file on disk."""
from __future__ import annotations

import logging
import os
from collections.abc import MutableMapping, Sequence
from pathlib import Path

from .constants import DEFAULT_CONFIG, DEFAULT_SETTINGS_FILE_NAME
from .document import ConfigDocument
from .errors import InvalidSettingOperation
from .events import EventHook
from .items import SettingItem
from .locking import execute_synchronized
from .sections import NuGetConfiguration, ParsedSettingSection, SettingSection, VirtualSettingSection

logger = logging.getLogger(__name__)


def _check_unbound(element, owner: "SettingsFile") -> None:
    if element.node is not None and element.origin is not None and element.origin is not owner:
        raise InvalidSettingOperation(
            "Cannot add an element that is already part of another config. "
            f"Path: '{element.origin.config_file_path}'."
        )


class SettingsFile:
    """A parsed config file together with its place in the priority chain.

    ``priority`` is higher for more authoritative files and ``next`` points
    to the next less authoritative one. Machine-wide and read-only files
    reject every mutation.
    """

    def __init__(
        self,
        directory_path: str | Path,
        file_name: str = DEFAULT_SETTINGS_FILE_NAME,
        is_machine_wide: bool = False,
        is_read_only: bool = False,
        *,
        default_content: bytes = DEFAULT_CONFIG,
    ):
        if directory_path is None:
            raise TypeError("directory_path must not be None")
        if not os.fspath(directory_path):
            raise ValueError("directory_path must not be empty")
        if not file_name:
            raise ValueError("file_name must not be empty")
        if Path(file_name).name != file_name:
            raise ValueError("Parameter 'file_name' cannot be a path.")
        self.directory_path = Path(os.path.abspath(directory_path))
        self.file_name = file_name
        self.config_file_path = self.directory_path / file_name
        self.is_machine_wide = is_machine_wide
        self.is_read_only = is_read_only
        self.is_dirty = False
        self.priority = 0
        self.next: SettingsFile | None = None
        self.changed = EventHook()
        self._default_content = default_content
        self.reload()

    def __repr__(self) -> str:
        flags = []
        if self.is_machine_wide:
            flags.append("machine-wide")
        if self.is_read_only:
            flags.append("read-only")
        suffix = f" ({', '.join(flags)})" if flags else ""
        return f"<SettingsFile {self.config_file_path}{suffix} priority={self.priority}>"

    @property
    def is_writable(self) -> bool:
        return not (self.is_machine_wide or self.is_read_only)

    # -- loading -----------------------------------------------------------
    def reload(self) -> None:
        """Re-read the file, creating it with default content when missing."""
        path = self.config_file_path

        def _load() -> tuple[ConfigDocument, NuGetConfiguration]:
            if path.exists():
                document = ConfigDocument.load(path)
            else:
                document = ConfigDocument.from_bytes(self._default_content, path)
                if self.is_writable:
                    document.write(path)
                    logger.debug("Created default config %s", path)
            return document, NuGetConfiguration.from_document(document, self)

        self.document, self._root = execute_synchronized(path, _load)
        self.is_dirty = False
        logger.debug("Loaded config %s", path)

    @property
    def root(self) -> NuGetConfiguration:
        return self._root

    # -- queries -----------------------------------------------------------
    def get_section(self, name: str) -> SettingSection | None:
        return self._root.get_section(name)

    def is_empty(self) -> bool:
        """True when the file holds no sections."""
        return self._root.is_empty()

    # -- mutation ----------------------------------------------------------
    def _ensure_writable(self) -> None:
        if self.is_machine_wide:
            raise InvalidSettingOperation(
                "Unable to update setting since it is in a machine-wide NuGet.Config."
            )
        if self.is_read_only:
            raise InvalidSettingOperation(
                "Unable to update setting since it is in an uneditable config file."
            )

    @staticmethod
    def _check_args(section_name: str, item) -> None:
        if not section_name:
            raise ValueError("section_name must not be empty")
        if item is None:
            raise TypeError("item must not be None")

    def add_or_update(self, section_name: str, item: SettingItem) -> None:
        """Update the equal item in *section_name*, or add a copy of *item*."""
        self._check_args(section_name, item)
        self._ensure_writable()
        self._add_or_update(section_name, item)
        self.changed.emit(self)

    def _add_or_update(self, section_name: str, item: SettingItem) -> None:
        section = self.get_section(section_name)
        if section is None:
            self._root.add(ParsedSettingSection(section_name, items=[item.clone()]))
            return
        existing = section.get(item)
        if existing is not None:
            existing.update(item)
        else:
            section.add(item.clone())

    def remove(self, section_name: str, item: SettingItem) -> bool:
        """Remove *item* from *section_name*; empty sections are dropped."""
        self._check_args(section_name, item)
        self._ensure_writable()
        section = self.get_section(section_name)
        if section is None or not section.remove(item):
            return False
        self.changed.emit(self)
        return True

    def create_section(self, section: SettingSection) -> None:
        """Add *section*, or its items when the section already exists."""
        if section is None:
            raise TypeError("section must not be None")
        self._ensure_writable()
        _check_unbound(section, self)
        for item in section.items:
            _check_unbound(item, self)
        if self.get_section(section.name) is not None:
            for item in section.items:
                self._add_or_update(section.name, item)
        else:
            self._root.add(ParsedSettingSection(
                section.name,
                dict(section.attributes.items()),
                [item.clone() for item in section.items],
            ))
        self.changed.emit(self)

    def merge_sections_into(self, sections: MutableMapping[str, SettingSection]) -> None:
        """Overlay this file's sections on the *sections* accumulated so far."""
        for section in self._root.sections:
            existing = sections.get(section.name)
            if existing is None:
                sections[section.name] = VirtualSettingSection.from_section(section)
                continue
            if not isinstance(existing, VirtualSettingSection):
                existing = sections[section.name] = VirtualSettingSection.from_section(existing)
            existing.merge(section)

    def save_to_disk(self) -> None:
        if not self.is_dirty:
            return
        path = self.config_file_path
        execute_synchronized(path, lambda: self.document.write(path))
        self.is_dirty = False
        logger.debug("Saved config %s", path)

    # -- chaining ----------------------------------------------------------
    @staticmethod
    def connect_settings_files_linked_list(files: Sequence["SettingsFile"]) -> None:
        """Chain *files*, given from least to most authoritative.

        Each file gets ``priority`` one above the previous and ``next``
        pointing back to it; the last file is the head of the chain.
        """
        previous: SettingsFile | None = None
        for index, settings_file in enumerate(files):
            settings_file.priority = index + 1
            settings_file.next = previous
            previous = settings_file
