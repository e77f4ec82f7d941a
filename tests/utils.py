from __future__ import annotations

import re
from pathlib import Path

_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")


def write_config(directory: Path, body: str, name: str = "NuGet.Config") -> Path:
    """Write ``<configuration>{body}</configuration>`` to *directory/name*."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(
        f'<?xml version="1.0" encoding="utf-8"?>\n<configuration>\n{body}\n</configuration>\n',
        encoding="utf-8",
    )
    return path


def remove_whitespace(text: str) -> str:
    return re.sub(r"\s+", "", text)


def config_body(path: Path) -> str:
    """Return the file content without declaration or whitespace."""
    text = _DECLARATION.sub("", path.read_text(encoding="utf-8"))
    return remove_whitespace(text)


def expected(body: str) -> str:
    return remove_whitespace(f"<configuration>{body}</configuration>")
