"""Concrete setting items found inside a config section."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from lxml import etree

from .base import AttributePolicy, SettingBase, SettingElement, SettingText, parse_error
from .constants import (
    ADD,
    CLEAR,
    CLEAR_TEXT_PASSWORD,
    KEY,
    PASSWORD,
    PROTOCOL_VERSION,
    USERNAME,
    VALID_AUTHENTICATION_TYPES,
    VALUE,
)
from .document import ConfigDocument, element_children, is_element, local_name
from .errors import InvalidSettingOperation
from .paths import resolve_path_from_origin

if TYPE_CHECKING:  # pragma: no cover
    from .settings_file import SettingsFile


def _new(cls, node: etree._Element, origin: "SettingsFile | None"):
    """Allocate *cls* for a parsed node without running ``__init__``."""
    item = cls.__new__(cls)
    SettingBase.__init__(item)
    if cls.element_name == "":
        item.element_name = local_name(node)
    item._load_attributes(node, origin)
    item._bind(node, origin)
    return item


class SettingItem(SettingElement):
    """An element that can live inside a section."""

    def _identity(self) -> tuple:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other._identity() == self._identity()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._identity()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.attributes.items())!r})"

    def update(self, other: "SettingItem") -> None:
        """Make this item match *other*, writing through to its file."""
        self._ensure_mutable()
        if type(other) is not type(self):
            raise InvalidSettingOperation(
                f"Cannot update a '{type(self).__name__}' with a '{type(other).__name__}'."
            )
        self._sync_attributes(other)

    def clone(self) -> "SettingItem":
        raise NotImplementedError


class AddItem(SettingItem):
    """``<add key="..." value="..." />``; identity is the key."""

    element_name = ADD
    policy = AttributePolicy(
        required=frozenset({KEY, VALUE}),
        disallowed_values={KEY: frozenset({""})},
    )

    def __init__(self, key: str, value: str, additional_attributes: Mapping[str, str] | None = None):
        if key is None or value is None:
            raise TypeError("key and value must not be None")
        attributes = {KEY: key, VALUE: value}
        attributes.update(additional_attributes or {})
        super().__init__(attributes)

    @classmethod
    def from_node(cls, node: etree._Element, origin: "SettingsFile | None") -> "AddItem":
        return _new(cls, node, origin)

    @property
    def key(self) -> str:
        return self.attributes[KEY]

    @property
    def value(self) -> str:
        return self.attributes[VALUE]

    @value.setter
    def value(self, value: str) -> None:
        self.set_attribute(VALUE, value)

    @property
    def additional_attributes(self) -> dict[str, str]:
        return {
            k: v for k, v in self.attributes.items() if k.lower() not in (KEY.lower(), VALUE.lower())
        }

    def get_value_as_path(self) -> str:
        """Return the value resolved against the directory of its file."""
        directory = self.origin.directory_path if self.origin is not None else None
        return resolve_path_from_origin(directory, self.value)

    def _identity(self) -> tuple:
        return (self.key,)

    def update(self, other: "AddItem") -> None:
        """Update from *other*; an empty value removes this item instead."""
        self._ensure_mutable()
        if type(other) is type(self) and not other.value and self.parent is not None:
            self.parent.remove(self)
            return
        super().update(other)

    def clone(self) -> "AddItem":
        return self._as_copy(AddItem(self.key, self.value, self.additional_attributes))


class SourceItem(AddItem):
    """A package source; identity is ``(key, protocolVersion)``."""

    def __init__(
        self,
        key: str,
        value: str,
        protocol_version: str | None = None,
        additional_attributes: Mapping[str, str] | None = None,
    ):
        attributes = dict(additional_attributes or {})
        if protocol_version:
            attributes[PROTOCOL_VERSION] = protocol_version
        super().__init__(key, value, attributes)

    @property
    def protocol_version(self) -> str | None:
        return self.attributes.get(PROTOCOL_VERSION)

    def _identity(self) -> tuple:
        return (self.key, self.protocol_version)

    def clone(self) -> "SourceItem":
        return self._as_copy(SourceItem(self.key, self.value, additional_attributes=self.additional_attributes))


class ClearItem(SettingItem):
    """``<clear />``: drops everything inherited before it."""

    element_name = CLEAR
    policy = AttributePolicy(allowed=frozenset())

    def __init__(self) -> None:
        super().__init__()

    @classmethod
    def from_node(cls, node: etree._Element, origin: "SettingsFile | None") -> "ClearItem":
        return _new(cls, node, origin)

    def is_empty(self) -> bool:
        return False

    def _identity(self) -> tuple:
        return ()

    def __repr__(self) -> str:
        return "ClearItem()"

    def clone(self) -> "ClearItem":
        return self._as_copy(ClearItem())


class CredentialsItem(SettingItem):
    """Credentials for one package source.

    The element is named after the source and holds ``add`` children for
    the user name, the password (encrypted or clear text) and optionally
    the valid authentication types.
    """

    policy = AttributePolicy(allowed=frozenset())

    def __init__(
        self,
        name: str,
        username: str,
        password: str,
        is_password_clear_text: bool = True,
        valid_authentication_types: str | None = None,
    ):
        if not name:
            raise ValueError("name must not be empty")
        if not username or not password:
            raise ValueError("username and password must not be empty")
        self.element_name = name
        super().__init__()
        self._username = AddItem(USERNAME, username)
        self._password = AddItem(CLEAR_TEXT_PASSWORD if is_password_clear_text else PASSWORD, password)
        self._auth_types = (
            AddItem(VALID_AUTHENTICATION_TYPES, valid_authentication_types)
            if valid_authentication_types else None
        )
        for child in self._parts():
            child.parent = self

    @classmethod
    def from_node(cls, node: etree._Element, origin: "SettingsFile | None") -> "CredentialsItem":
        item = _new(cls, node, origin)
        item._username = item._password = item._auth_types = None
        children = list(element_children(node))
        if not 2 <= len(children) <= 3:
            raise parse_error(
                f"Credentials item '{item.element_name}' must have a username, a password"
                " and optionally valid authentication types.",
                origin,
            )
        for child in children:
            if local_name(child).lower() != ADD:
                raise parse_error(
                    f"Unexpected element '{local_name(child)}' in credentials item '{item.element_name}'.",
                    origin,
                )
            add = AddItem.from_node(child, origin)
            add.parent = item
            key = add.key.lower()
            if key == USERNAME.lower() and item._username is None:
                item._username = add
            elif key in (PASSWORD.lower(), CLEAR_TEXT_PASSWORD.lower()) and item._password is None:
                item._password = add
            elif key == VALID_AUTHENTICATION_TYPES.lower() and item._auth_types is None:
                item._auth_types = add
            else:
                raise parse_error(
                    f"Unexpected or duplicated key '{add.key}' in credentials item '{item.element_name}'.",
                    origin,
                )
        if item._username is None or item._password is None:
            raise parse_error(
                f"Credentials item '{item.element_name}' must have a username and a password.",
                origin,
            )
        return item

    def _parts(self) -> list[AddItem]:
        return [p for p in (self._username, self._password, self._auth_types) if p is not None]

    @property
    def username(self) -> str:
        return self._username.value

    @property
    def password(self) -> str:
        return self._password.value

    @property
    def is_password_clear_text(self) -> bool:
        return self._password.key.lower() == CLEAR_TEXT_PASSWORD.lower()

    @property
    def valid_authentication_types(self) -> str | None:
        return self._auth_types.value if self._auth_types is not None else None

    def is_empty(self) -> bool:
        return False

    def _identity(self) -> tuple:
        return (self.element_name,)

    def __repr__(self) -> str:
        return f"CredentialsItem({self.element_name!r}, username={self.username!r})"

    def update(self, other: "CredentialsItem") -> None:
        self._ensure_mutable()
        if type(other) is not type(self):
            raise InvalidSettingOperation(
                f"Cannot update a '{type(self).__name__}' with a '{type(other).__name__}'."
            )
        self._username._sync_attributes(other._username)
        self._password._sync_attributes(other._password)
        if self._auth_types is not None and other._auth_types is not None:
            self._auth_types._sync_attributes(other._auth_types)
        elif self._auth_types is not None:
            if self.document is not None:
                self.document.remove_child(self._auth_types.node)
                self._mark_dirty()
            self._auth_types._detach()
            self._auth_types = None
        elif other._auth_types is not None:
            auth = AddItem(VALID_AUTHENTICATION_TYPES, other.valid_authentication_types)
            auth.parent = self
            if self.document is not None:
                node = auth._materialize(self.document)
                self.document.append_child(self._node, node)
                auth._bind(node, self.origin)
                self._mark_dirty()
            self._auth_types = auth

    def deep_equals(self, other: object) -> bool:
        return (
            isinstance(other, CredentialsItem)
            and self == other
            and other.username == self.username
            and other.password == self.password
            and other.is_password_clear_text == self.is_password_clear_text
            and other.valid_authentication_types == self.valid_authentication_types
        )

    def clone(self) -> "CredentialsItem":
        return self._as_copy(CredentialsItem(
            self.element_name,
            self.username,
            self.password,
            self.is_password_clear_text,
            self.valid_authentication_types,
        ))

    def _materialize(self, document: ConfigDocument):
        node = document.create_element(self.element_name)
        for part in self._parts():
            node.append(part._materialize(document))
        return node

    def _bind(self, node, origin) -> None:
        super()._bind(node, origin)
        if node is None or not hasattr(self, "_username") or self._username is None:
            return
        for part, child in zip(self._parts(), element_children(node)):
            part._bind(child, origin)

    def _detach(self) -> None:
        super()._detach()
        for part in self._parts():
            part._node = None
            part.origin = None


class UnknownItem(SettingItem):
    """Any other element, kept with its attributes, children and text."""

    def __init__(
        self,
        name: str,
        attributes: Mapping[str, str] | None = None,
        children: Iterable[SettingBase] | None = None,
    ):
        if not name:
            raise ValueError("name must not be empty")
        self.element_name = name
        super().__init__(attributes)
        self._children: dict[SettingBase, SettingBase] = {}
        for child in children or ():
            if child not in self._children:
                child.parent = self
                self._children[child] = child

    @classmethod
    def from_node(cls, node: etree._Element, origin: "SettingsFile | None") -> "UnknownItem":
        from .factory import parse_setting

        item = _new(cls, node, origin)
        item._children = {}
        if node.text and node.text.strip():
            item._adopt(SettingText(node.text.strip()), origin)
        for child in node:
            if is_element(child):
                item._adopt(parse_setting(child, origin, item.element_name), origin)
            if child.tail and child.tail.strip():
                item._adopt(SettingText(child.tail.strip()), origin)
        return item

    def _adopt(self, child: SettingBase, origin) -> None:
        if child in self._children:
            return
        child.parent = self
        if isinstance(child, SettingText):
            child.origin = origin
        self._children[child] = child

    @property
    def children(self) -> list[SettingBase]:
        return list(self._children.values())

    def is_empty(self) -> bool:
        return False

    def _identity(self) -> tuple:
        return (self.element_name,)

    def add(self, child: SettingBase) -> bool:
        self._ensure_mutable()
        if child is None:
            raise TypeError("child must not be None")
        if child in self._children or child.is_empty():
            return False
        document = self.document
        if document is not None:
            if isinstance(child, SettingText):
                document.append_text(self._node, child.value)
                child.origin = self.origin
                child._is_copy = False
            else:
                node = child._materialize(document)
                document.append_child(self._node, node)
                child._bind(node, self.origin)
            self._mark_dirty()
        child.parent = self
        self._children[child] = child
        return True

    def remove(self, child: SettingBase) -> bool:
        self._ensure_mutable()
        current = self._children.get(child)
        if current is None:
            return False
        document = self.document
        if document is not None:
            if isinstance(current, SettingText):
                document.remove_text(self._node, current.value)
            else:
                document.remove_child(current.node)
            self._mark_dirty()
        del self._children[child]
        current._detach()
        return True

    def update(self, other: "UnknownItem") -> None:
        super().update(other)
        for child in self.children:
            if child not in other._children:
                self.remove(child)
        for child in other.children:
            existing = self._children.get(child)
            if existing is None:
                self.add(child.clone())
            elif isinstance(existing, SettingItem):
                existing.update(child)

    def merge(self, other: "UnknownItem") -> None:
        """Overlay *other* on this in-memory item without touching any file."""
        for name, value in other.attributes.items():
            self.attributes[name] = value
        for child in other.children:
            existing = self._children.get(child)
            if isinstance(existing, UnknownItem) and isinstance(child, UnknownItem):
                existing.merge(child)
                continue
            copy = child.clone()
            copy.parent = self
            self._children[child] = copy

    def deep_equals(self, other: object) -> bool:
        if not (isinstance(other, UnknownItem) and self == other and self._attributes_equal(other)):
            return False
        if len(self._children) != len(other._children):
            return False
        return all(
            child in other._children and other._children[child].deep_equals(child)
            for child in self._children.values()
        )

    def clone(self) -> "UnknownItem":
        return self._as_copy(UnknownItem(
            self.element_name,
            dict(self.attributes.items()),
            [child.clone() for child in self.children],
        ))

    def _materialize(self, document: ConfigDocument):
        node = document.create_element(self.element_name, dict(self.attributes.items()))
        for child in self.children:
            if isinstance(child, SettingText):
                document.append_text(node, child.value)
            else:
                node.append(child._materialize(document))
        return node

    def _bind(self, node, origin) -> None:
        super()._bind(node, origin)
        if node is None or not hasattr(self, "_children"):
            return
        elements = [c for c in self._children.values() if not isinstance(c, SettingText)]
        for child, child_node in zip(elements, element_children(node)):
            child._bind(child_node, origin)
        for child in self._children.values():
            if isinstance(child, SettingText):
                child.origin = origin
                child._is_copy = False

    def _detach(self) -> None:
        super()._detach()
        for child in self._children.values():
            child._node = None
            child.origin = None
