"""Turn XML nodes into setting objects."""
from __future__ import annotations

from typing import TYPE_CHECKING

from lxml import etree

from .base import SettingBase
from .constants import ADD, CLEAR, CONFIGURATION, CREDENTIALS_SECTION, PACKAGE_SOURCES
from .document import element_children, local_name
from .items import AddItem, ClearItem, CredentialsItem, SettingItem, SourceItem, UnknownItem
from .sections import ParsedSettingSection

if TYPE_CHECKING:  # pragma: no cover
    from .settings_file import SettingsFile


def parse_setting(node: etree._Element, origin: "SettingsFile | None", parent_name: str | None) -> SettingBase:
    """Build the setting for *node*, whose parent element is *parent_name*."""
    name = local_name(node).lower()
    parent = (parent_name or "").lower()
    if parent == CONFIGURATION.lower():
        return ParsedSettingSection.from_node(node, origin)
    if name == ADD:
        if parent == PACKAGE_SOURCES.lower():
            return SourceItem.from_node(node, origin)
        return AddItem.from_node(node, origin)
    if name == CLEAR:
        return ClearItem.from_node(node, origin)
    if parent == CREDENTIALS_SECTION.lower():
        return CredentialsItem.from_node(node, origin)
    return UnknownItem.from_node(node, origin)


def parse_children(node: etree._Element, origin: "SettingsFile | None", can_be_cleared: bool = True) -> list[SettingItem]:
    """Parse the element children of *node* in document order.

    A ``<clear />`` in a clearable group drops what was read before it and
    is kept as the first child. The first of two equal items wins.
    """
    children: dict[SettingItem, SettingItem] = {}
    parent_name = local_name(node)
    for child_node in element_children(node):
        item = parse_setting(child_node, origin, parent_name)
        if isinstance(item, ClearItem) and can_be_cleared:
            children.clear()
        children.setdefault(item, item)
    return list(children.values())
