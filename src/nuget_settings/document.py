"""The XML document behind one config file.

All changes to the tree go through :class:`ConfigDocument` so that setting
objects never edit lxml nodes on their own. New nodes are indented like
their siblings; comments and unrelated whitespace are left untouched.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, Mapping

from lxml import etree

from .constants import CONFIGURATION
from .errors import NuGetConfigurationError

INDENT = "  "
XML_DECLARATION = b'<?xml version="1.0" encoding="utf-8"?>\n'

_ESCAPE_RE = re.compile(r"_x([0-9A-Fa-f]{4})_")


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


# ---------------------------------------------------------------------------
# Element names
# ---------------------------------------------------------------------------

def _is_name_char(ch: str, first: bool) -> bool:
    if ch == "_" or ch.isalpha():
        return True
    return not first and (ch.isdigit() or ch in ".-")


def encode_name(name: str) -> str:
    """Encode *name* as an XML local name using ``_xHHHH_`` escapes."""
    out = []
    for i, ch in enumerate(name):
        if ch == "_" and _ESCAPE_RE.match(name, i):
            out.append("_x005F_")
        elif _is_name_char(ch, i == 0):
            out.append(ch)
        else:
            out.append(f"_x{ord(ch):04X}_")
    return "".join(out)


def decode_name(name: str) -> str:
    return _ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), name)


def local_name(node: etree._Element) -> str:
    return decode_name(etree.QName(node).localname)


def is_element(node) -> bool:
    return isinstance(node.tag, str)


def element_children(node: etree._Element) -> Iterator[etree._Element]:
    for child in node:
        if is_element(child):
            yield child


def text_children(node: etree._Element) -> Iterator[str]:
    """Yield the non-blank text runs directly inside *node*, in order."""
    if node.text and node.text.strip():
        yield node.text.strip()
    for child in node:
        if child.tail and child.tail.strip():
            yield child.tail.strip()


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class ConfigDocument:
    """Mutable lxml tree of a ``NuGet.Config`` file."""

    def __init__(self, tree: etree._ElementTree):
        self.tree = tree

    @classmethod
    def from_bytes(cls, data: bytes, path: str | Path | None = None) -> "ConfigDocument":
        """Parse *data*; the root element must be ``<configuration>``.

        lxml syntax errors propagate so the caller can attach the file path.
        """
        if not data.strip():
            raise NuGetConfigurationError("NuGet.Config is not valid XML.", path)
        root = etree.fromstring(data, _parser())
        if root.tag != CONFIGURATION:
            raise NuGetConfigurationError(
                f"NuGet.Config does not contain the expected root element: '{CONFIGURATION}'.",
                path,
            )
        return cls(root.getroottree())

    @classmethod
    def load(cls, path: Path) -> "ConfigDocument":
        return cls.from_bytes(path.read_bytes(), path)

    @property
    def root(self) -> etree._Element:
        return self.tree.getroot()

    def to_bytes(self) -> bytes:
        body = etree.tostring(self.tree, encoding="utf-8", xml_declaration=False)
        return XML_DECLARATION + body + b"\n"

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(self.to_bytes())
        tmp.replace(path)

    # -- node creation ---------------------------------------------------
    def create_element(self, name: str, attributes: Mapping[str, str] | None = None) -> etree._Element:
        node = etree.Element(encode_name(name))
        for key, value in (attributes or {}).items():
            node.set(key, value)
        return node

    # -- indentation helpers ---------------------------------------------
    @staticmethod
    def _leading_ws(node: etree._Element) -> str | None:
        prev = node.getprevious()
        text = prev.tail if prev is not None else (node.getparent().text if node.getparent() is not None else None)
        if text is None or "\n" not in text:
            return None
        tail = text.rsplit("\n", 1)[1]
        return tail if not tail.strip() else None

    def _indent_of(self, node: etree._Element) -> str:
        if node.getparent() is None:
            return ""
        found = self._leading_ws(node)
        if found is not None:
            return found
        return self._indent_of(node.getparent()) + INDENT

    def _child_indent(self, parent: etree._Element) -> str:
        for child in parent:
            found = self._leading_ws(child)
            if found is not None:
                return found
            break
        return self._indent_of(parent) + INDENT

    def _format_subtree(self, node: etree._Element, indent: str) -> None:
        children = list(node)
        if not children:
            return
        inner = indent + INDENT
        if not (node.text and node.text.strip()):
            node.text = "\n" + inner
        for i, child in enumerate(children):
            self._format_subtree(child, inner)
            if child.tail and child.tail.strip():
                continue
            child.tail = "\n" + (inner if i < len(children) - 1 else indent)

    # -- mutation --------------------------------------------------------
    def append_child(self, parent: etree._Element, child: etree._Element) -> None:
        """Append *child* to *parent*, indented like its siblings."""
        indent = self._child_indent(parent)
        closing = "\n" + self._indent_of(parent)
        children = list(parent)
        if children:
            last = children[-1]
            if last.tail and last.tail.strip():
                last.tail = last.tail.rstrip() + "\n" + indent
            else:
                last.tail = "\n" + indent
        elif parent.text and parent.text.strip():
            parent.text = parent.text.rstrip() + "\n" + indent
        else:
            parent.text = "\n" + indent
        child.tail = closing
        parent.append(child)
        self._format_subtree(child, indent)

    def remove_child(self, node: etree._Element) -> None:
        """Detach *node* and the whitespace that introduced it."""
        parent = node.getparent()
        if parent is None:
            return
        tail = node.tail or ""
        prev = node.getprevious()
        if prev is not None:
            before = prev.tail or ""
            prev.tail = (before.rstrip() + tail) if before.strip() else tail
        else:
            before = parent.text or ""
            parent.text = (before.rstrip() + tail) if before.strip() else tail
        parent.remove(node)
        if not any(True for _ in element_children(parent)) and not (parent.text or "").strip():
            parent.text = "\n" + self._indent_of(parent)

    def set_attribute(self, node: etree._Element, name: str, value: str) -> None:
        node.set(name, value)

    def remove_attribute(self, node: etree._Element, name: str) -> None:
        if name in node.attrib:
            del node.attrib[name]

    # -- text ------------------------------------------------------------
    @staticmethod
    def _text_slots(node: etree._Element):
        yield node, "text"
        for child in node:
            yield child, "tail"

    def append_text(self, node: etree._Element, text: str) -> None:
        children = list(node)
        owner, attr = (children[-1], "tail") if children else (node, "text")
        current = getattr(owner, attr) or ""
        if current.strip():
            setattr(owner, attr, current.rstrip() + " " + text + current[len(current.rstrip()):])
        else:
            setattr(owner, attr, text + current)

    def replace_text(self, node: etree._Element, old: str, new: str) -> bool:
        for owner, attr in self._text_slots(node):
            current = getattr(owner, attr)
            if current and current.strip() == old:
                setattr(owner, attr, current.replace(old, new, 1))
                return True
        return False

    def remove_text(self, node: etree._Element, text: str) -> bool:
        for owner, attr in self._text_slots(node):
            current = getattr(owner, attr)
            if current and current.strip() == text:
                setattr(owner, attr, current[len(current.rstrip()):] or None)
                return True
        return False
