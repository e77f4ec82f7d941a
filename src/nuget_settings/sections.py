"""Groups of setting items: sections and the configuration root."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from lxml import etree

from .base import SettingBase, SettingElement
from .constants import CONFIGURATION
from .document import ConfigDocument, element_children, local_name
from .errors import InvalidSettingOperation
from .items import ClearItem, SettingItem, UnknownItem

if TYPE_CHECKING:  # pragma: no cover
    from .settings_file import SettingsFile


class SettingsGroup(SettingElement):
    """An element whose children are keyed by their identity."""

    can_be_cleared = True

    def _init_children(self) -> None:
        self._children: dict[SettingBase, SettingBase] = {}

    @property
    def items(self) -> list:
        return list(self._children.values())

    def __contains__(self, item: object) -> bool:
        return item in self._children

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self):
        return iter(list(self._children.values()))

    def get(self, item: SettingBase):
        """Return the child equal to *item*, or ``None``."""
        return self._children.get(item)

    def is_empty(self) -> bool:
        return not self._children

    def add(self, item: SettingBase) -> bool:
        """Add *item*; returns ``False`` when an equal item exists or it is empty."""
        self._ensure_mutable()
        if item is None:
            raise TypeError("item must not be None")
        if item in self._children or item.is_empty():
            return False
        if item.node is not None and item.origin is not None and item.origin is not self.origin:
            raise InvalidSettingOperation(
                "Cannot add an element that is already part of another config. "
                f"Path: '{item.origin.config_file_path}'."
            )
        document = self.document
        if document is not None:
            node = item._materialize(document)
            document.append_child(self._node, node)
            item._bind(node, self.origin)
            self._mark_dirty()
        item.parent = self
        self._children[item] = item
        return True

    def remove(self, item: SettingBase) -> bool:
        """Remove the child equal to *item*.

        A group left without children removes itself from its parent.
        """
        self._ensure_mutable()
        if item is None:
            raise TypeError("item must not be None")
        current = self._children.get(item)
        if current is None:
            return False
        document = self.document
        if document is not None and current.node is not None:
            document.remove_child(current.node)
            self._mark_dirty()
        del self._children[item]
        current._detach()
        if not self._children and isinstance(self.parent, SettingsGroup):
            self.parent.remove(self)
        return True

    def _materialize(self, document: ConfigDocument):
        node = super()._materialize(document)
        for child in self._children.values():
            node.append(child._materialize(document))
        return node

    def _bind(self, node, origin) -> None:
        super()._bind(node, origin)
        if node is None or not hasattr(self, "_children"):
            return
        for child, child_node in zip(self._children.values(), element_children(node)):
            child._bind(child_node, origin)

    def _detach(self) -> None:
        super()._detach()
        for child in self._children.values():
            child._detach()


class SettingSection(SettingsGroup):
    """A named section such as ``packageSources``."""

    def __init__(
        self,
        name: str,
        attributes: Mapping[str, str] | None = None,
        items: Iterable[SettingItem] = (),
    ):
        if not name:
            raise ValueError("section name must not be empty")
        self.element_name = name
        super().__init__(attributes)
        self._init_children()
        for item in items:
            if item is None:
                raise TypeError("item must not be None")
            if item not in self._children:
                item.parent = self
                self._children[item] = item

    @property
    def name(self) -> str:
        return self.element_name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SettingSection) and other.element_name == self.element_name

    def __hash__(self) -> int:
        return hash(("section", self.element_name))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.element_name!r}, {self.items!r})"

    def get_first_item_with_attribute(self, name: str, value: str, kind: type | None = None):
        """Return the first item whose attribute *name* equals *value*."""
        for item in self._children.values():
            if kind is not None and not isinstance(item, kind):
                continue
            if isinstance(item, SettingElement) and item.attributes.get(name) == value:
                return item
        return None

    def deep_equals(self, other: object) -> bool:
        if not (isinstance(other, SettingSection) and self == other and self._attributes_equal(other)):
            return False
        if len(self) != len(other):
            return False
        return all(
            other.get(item) is not None and other.get(item).deep_equals(item)
            for item in self.items
        )

    def clone(self) -> "SettingSection":
        return self._as_copy(SettingSection(
            self.element_name,
            dict(self.attributes.items()),
            [item.clone() for item in self.items],
        ))


class ParsedSettingSection(SettingSection):
    """A section read from, or created inside, a config file."""

    @classmethod
    def from_node(cls, node: etree._Element, origin: "SettingsFile | None") -> "ParsedSettingSection":
        from .factory import parse_children

        section = cls.__new__(cls)
        SettingBase.__init__(section)
        section.element_name = local_name(node)
        section._load_attributes(node, origin)
        section._init_children()
        section._bind(node, origin)
        for item in parse_children(node, origin, section.can_be_cleared):
            item.parent = section
            section._children[item] = item
        return section


class VirtualSettingSection(SettingSection):
    """The merged view of one section across all config files.

    Items stay owned by their files; the view only records which item is
    visible for each identity and which lower priority items it shadows.
    """

    def __init__(
        self,
        name: str,
        attributes: Mapping[str, str] | None = None,
        items: Iterable[SettingItem] = (),
    ):
        super().__init__(name, attributes)
        self._merged_with: dict[SettingItem, list[SettingItem]] = {}
        for item in items:
            self._children.setdefault(item, item)

    @classmethod
    def from_section(cls, section: SettingSection) -> "VirtualSettingSection":
        virtual = cls(section.element_name)
        virtual.merge(section)
        return virtual

    def merged_with(self, item: SettingItem) -> list[SettingItem]:
        """Items shadowed by the visible *item*, nearest first."""
        return list(self._merged_with.get(item, ()))

    def merge(self, other: SettingSection) -> None:
        """Overlay the items of a more authoritative *other* section."""
        for name, value in other.attributes.items():
            self.attributes[name] = value
        for item in other.items:
            if isinstance(item, ClearItem):
                if self.can_be_cleared:
                    self._children.clear()
                    self._merged_with.clear()
                self._children[item] = item
                continue
            existing = self._children.get(item)
            if existing is None:
                self._children[item] = item.clone() if isinstance(item, UnknownItem) else item
                continue
            shadowed = [self._source_of(existing), *self._merged_with.get(item, ())]
            if isinstance(existing, UnknownItem) and isinstance(item, UnknownItem):
                existing.merge(item)
                existing.origin = item.origin
            else:
                self._children[item] = item
            self._merged_with[item] = shadowed

    def _source_of(self, visible: SettingItem) -> SettingItem:
        """Return the file-owned item behind a visible entry."""
        if not visible.is_copy() or visible.origin is None:
            return visible
        section = visible.origin.get_section(self.element_name)
        found = section.get(visible) if section is not None else None
        return found if found is not None else visible

    @staticmethod
    def _is_immutable(item: SettingBase) -> bool:
        return item.origin is not None and (item.origin.is_machine_wide or item.origin.is_read_only)

    def update(self, item: SettingItem) -> bool:
        """Update the visible item equal to *item* in its own file.

        Returns ``False`` when there is no such item or its file cannot be
        written, so the caller can add *item* elsewhere instead.
        """
        visible = self._children.get(item)
        if visible is None or self._is_immutable(visible):
            return False
        self._source_of(visible).update(item)
        return True

    def remove(self, item: SettingItem) -> bool:
        """Remove *item* from every file that contributes it.

        Shadowed copies are removed as well, up to the first one living in a
        machine-wide or read-only file, which becomes visible again.
        """
        if item is None:
            raise TypeError("item must not be None")
        visible = self._children.get(item)
        if visible is None:
            return False
        visible._ensure_mutable()
        shadowed = self._merged_with.pop(item, [])
        self._remove_from_file(self._source_of(visible))
        del self._children[item]
        for index, older in enumerate(shadowed):
            if self._is_immutable(older):
                self._children[older] = older.clone() if isinstance(older, UnknownItem) else older
                self._merged_with[older] = shadowed[index + 1:]
                break
            self._remove_from_file(older)
        return True

    @staticmethod
    def _remove_from_file(item: SettingBase) -> None:
        if isinstance(item.parent, SettingsGroup):
            item.parent.remove(item)

    def clone(self) -> "VirtualSettingSection":
        return VirtualSettingSection(
            self.element_name,
            dict(self.attributes.items()),
            [item.clone() for item in self.items],
        )


class NuGetConfiguration(SettingsGroup):
    """The ``<configuration>`` root of one file."""

    element_name = CONFIGURATION
    can_be_cleared = False

    @classmethod
    def from_document(cls, document: ConfigDocument, origin: "SettingsFile | None") -> "NuGetConfiguration":
        from .factory import parse_setting

        config = cls.__new__(cls)
        SettingBase.__init__(config)
        config._load_attributes(document.root, origin)
        config._init_children()
        config._bind(document.root, origin)
        for node in element_children(document.root):
            section = parse_setting(node, origin, CONFIGURATION)
            # Duplicate sections: the first one wins.
            if isinstance(section, SettingSection) and section not in config._children:
                section.parent = config
                config._children[section] = section
        return config

    @property
    def sections(self) -> list[SettingSection]:
        return list(self._children.values())

    def get_section(self, name: str) -> SettingSection | None:
        for section in self._children.values():
            if section.element_name == name:
                return section
        return None

    def is_empty(self) -> bool:
        return not self._children

    def deep_equals(self, other: object) -> bool:
        if not isinstance(other, NuGetConfiguration) or len(self) != len(other):
            return False
        return all(
            other.get_section(s.element_name) is not None
            and other.get_section(s.element_name).deep_equals(s)
            for s in self.sections
        )
