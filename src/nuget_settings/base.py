"""Building blocks shared by every node of the settings tree."""
from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lxml import etree

from .document import ConfigDocument, local_name
from .errors import InvalidSettingOperation, NuGetConfigurationError

if TYPE_CHECKING:  # pragma: no cover
    from .settings_file import SettingsFile


class AttributeMap(MutableMapping):
    """Attribute dictionary with case-insensitive, case-preserving keys."""

    def __init__(self, data: Mapping[str, str] | None = None):
        self._data: dict[str, tuple[str, str]] = {}
        for key, value in (data or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()][1]

    def __setitem__(self, key: str, value: str) -> None:
        existing = self._data.get(key.lower())
        name = existing[0] if existing else key
        self._data[key.lower()] = (name, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._data

    def normalized(self) -> dict[str, str]:
        return {k: v for k, (_, v) in self._data.items()}

    def __repr__(self) -> str:
        return f"AttributeMap({dict(self.items())!r})"


@dataclass(frozen=True)
class AttributePolicy:
    """Which attributes an element accepts and which values they may take.

    ``allowed`` of ``None`` accepts any attribute; an empty set accepts none.
    All names are compared case-insensitively.
    """

    allowed: frozenset[str] | None = None
    required: frozenset[str] = frozenset()
    allowed_values: Mapping[str, frozenset[str]] = field(default_factory=dict)
    disallowed_values: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def _lookup(self, table: Mapping[str, frozenset[str]], name: str) -> frozenset[str] | None:
        for key, values in table.items():
            if key.lower() == name.lower():
                return values
        return None

    def is_required(self, name: str) -> bool:
        return any(r.lower() == name.lower() for r in self.required)

    def check(self, name: str, value: str, element: str) -> str | None:
        """Return an error message when *name*=*value* is not acceptable."""
        if self.allowed is not None and not any(a.lower() == name.lower() for a in self.allowed):
            return f"Attribute '{name}' is not allowed in element '{element}'."
        allowed = self._lookup(self.allowed_values, name)
        if allowed is not None and value not in allowed:
            return f"Attribute '{name}' in element '{element}' has an invalid value '{value}'."
        disallowed = self._lookup(self.disallowed_values, name)
        if disallowed is not None and value in disallowed:
            return f"Attribute '{name}' in element '{element}' has an invalid value '{value}'."
        return None

    def validate(self, attributes: Mapping[str, str], element: str) -> str | None:
        for name in self.required:
            if name not in attributes:
                return f"Missing required attribute '{name}' in element '{element}'."
        for name, value in attributes.items():
            problem = self.check(name, value, element)
            if problem:
                return problem
        return None


def parse_error(message: str, origin: "SettingsFile | None") -> NuGetConfigurationError:
    path = origin.config_file_path if origin is not None else None
    return NuGetConfigurationError(f"Unable to parse config file because: {message}", path)


class SettingBase:
    """A node of the settings tree, optionally backed by an XML node."""

    def __init__(self) -> None:
        self._node: Any = None
        self.origin: SettingsFile | None = None
        self.parent: SettingBase | None = None
        self._is_copy = False

    # -- state -------------------------------------------------------------
    def is_abstract(self) -> bool:
        """True when no XML node backs this setting."""
        return self._node is None

    def is_copy(self) -> bool:
        return self._is_copy

    def is_empty(self) -> bool:
        raise NotImplementedError

    @property
    def node(self):
        return self._node

    @property
    def document(self) -> ConfigDocument | None:
        if self._node is None or self.origin is None:
            return None
        return self.origin.document

    def _mark_dirty(self) -> None:
        if self.origin is not None and self._node is not None:
            self.origin.is_dirty = True

    def _ensure_mutable(self) -> None:
        origin = self.origin
        if origin is None:
            return
        if origin.is_machine_wide:
            raise InvalidSettingOperation(
                "Unable to update setting since it is in a machine-wide NuGet.Config."
            )
        if origin.is_read_only:
            raise InvalidSettingOperation(
                "Unable to update setting since it is in an uneditable config file."
            )

    # -- binding -----------------------------------------------------------
    def _materialize(self, document: ConfigDocument):
        """Create the XML node for this (abstract) setting."""
        raise NotImplementedError

    def _bind(self, node, origin: "SettingsFile | None") -> None:
        self._node = node
        self.origin = origin
        self._is_copy = False

    def _detach(self) -> None:
        """Drop node, origin and parent after removal from a file."""
        self._node = None
        self.origin = None
        self.parent = None

    # -- comparison --------------------------------------------------------
    def deep_equals(self, other: object) -> bool:
        raise NotImplementedError

    def clone(self) -> "SettingBase":
        raise NotImplementedError

    def _as_copy(self, copy: "SettingBase") -> "SettingBase":
        copy.origin = self.origin
        copy._is_copy = self.origin is not None
        return copy


class SettingElement(SettingBase):
    """A setting with an element name and validated attributes."""

    element_name: str = ""
    policy: AttributePolicy = AttributePolicy()

    def __init__(self, attributes: Mapping[str, str] | None = None):
        super().__init__()
        self.attributes = AttributeMap(attributes)
        problem = self.policy.validate(self.attributes, self.element_name)
        if problem:
            raise ValueError(problem)

    def _load_attributes(self, node: etree._Element, origin: "SettingsFile | None") -> None:
        self.attributes = AttributeMap(dict(node.attrib))
        problem = self.policy.validate(self.attributes, local_name(node))
        if problem:
            raise parse_error(problem, origin)

    def is_empty(self) -> bool:
        return not self.attributes

    # -- attributes --------------------------------------------------------
    def set_attribute(self, name: str, value: str) -> None:
        """Add or change attribute *name*, writing through to the file."""
        self._ensure_mutable()
        problem = self.policy.check(name, value, self.element_name)
        if problem:
            raise ValueError(problem)
        if name in self.attributes and self.attributes[name] == value:
            return
        self.attributes[name] = value
        document = self.document
        if document is not None:
            stored = next(k for k in self.attributes if k.lower() == name.lower())
            document.set_attribute(self._node, stored, value)
            self._mark_dirty()

    def remove_attribute(self, name: str) -> bool:
        self._ensure_mutable()
        if name not in self.attributes:
            return False
        if self.policy.is_required(name):
            raise ValueError(f"Attribute '{name}' is required in element '{self.element_name}'.")
        stored = next(k for k in self.attributes if k.lower() == name.lower())
        del self.attributes[name]
        document = self.document
        if document is not None:
            document.remove_attribute(self._node, stored)
            self._mark_dirty()
        return True

    def _sync_attributes(self, other: "SettingElement") -> None:
        for name in list(self.attributes):
            if name not in other.attributes:
                self.remove_attribute(name)
        for name, value in other.attributes.items():
            self.set_attribute(name, value)

    def _materialize(self, document: ConfigDocument):
        return document.create_element(self.element_name, dict(self.attributes))

    def _attributes_equal(self, other: "SettingElement") -> bool:
        return self.attributes.normalized() == other.attributes.normalized()

    def deep_equals(self, other: object) -> bool:
        return (
            type(other) is type(self)
            and self == other
            and self._attributes_equal(other)
        )


class SettingText(SettingBase):
    """A run of text inside an unknown element."""

    def __init__(self, value: str):
        super().__init__()
        if value is None:
            raise TypeError("value must not be None")
        self.value = value

    def is_empty(self) -> bool:
        return not self.value.strip()

    @property
    def _parent_node(self):
        return self.parent.node if self.parent is not None else None

    def update(self, other: "SettingText") -> None:
        self._ensure_mutable()
        if other.value == self.value:
            return
        parent_node = self._parent_node
        if parent_node is not None and self.origin is not None:
            self.origin.document.replace_text(parent_node, self.value, other.value)
            self.origin.is_dirty = True
        self.value = other.value

    def clone(self) -> "SettingText":
        return self._as_copy(SettingText(self.value))

    def deep_equals(self, other: object) -> bool:
        return self == other

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SettingText) and other.value == self.value

    def __hash__(self) -> int:
        return hash(("text", self.value))

    def __repr__(self) -> str:
        return f"SettingText({self.value!r})"
