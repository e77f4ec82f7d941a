"""Cross-process advisory locks keyed by config file path."""
from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from collections.abc import Callable
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TypeVar

from lxml import etree

from .errors import InvalidSettingOperation, NuGetConfigurationError

if os.name == "nt":  # pragma: no cover - platform specific
    import msvcrt
else:  # pragma: no cover - platform specific
    import fcntl

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOCK_DIR_NAME = "nuget-settings-locks"


def lock_file_for(path: str | Path) -> Path:
    """Return the lock file guarding *path*.

    Locks live in the temporary directory so that read-only locations such
    as machine-wide config folders can still be locked.
    """
    key = os.path.normcase(os.path.abspath(os.fspath(path)))
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return Path(tempfile.gettempdir()) / LOCK_DIR_NAME / f"{digest}.lock"


@contextmanager
def locked(path: str | Path, exclusive: bool = True) -> Iterator[None]:
    """Context manager acquiring an advisory lock for *path*."""

    lock_path = lock_file_for(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a") as fh:
        if os.name == "nt":  # pragma: no cover - platform specific
            fh.seek(0)
            mode = msvcrt.LK_LOCK if exclusive else msvcrt.LK_RLCK
            msvcrt.locking(fh.fileno(), mode, 1)
        else:  # pragma: no cover - platform specific
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield
        finally:
            if os.name == "nt":  # pragma: no cover - platform specific
                fh.seek(0)
                msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
            else:  # pragma: no cover - platform specific
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def execute_synchronized(path: str | Path, operation: Callable[[], T]) -> T:
    """Run *operation* while holding the exclusive lock for *path*.

    XML, permission and invalid-operation failures raised by *operation*
    are reported as :class:`NuGetConfigurationError` for *path*.
    """
    with locked(path):
        try:
            return operation()
        except etree.XMLSyntaxError as exc:
            raise NuGetConfigurationError(
                "NuGet.Config is not valid XML.", path
            ) from exc
        except PermissionError as exc:
            raise NuGetConfigurationError(
                "Failed to read NuGet.Config due to unauthorized access.", path
            ) from exc
        except InvalidSettingOperation as exc:
            raise NuGetConfigurationError(str(exc), path) from exc
        except OSError as exc:
            logger.debug("I/O failure on %s: %s", path, exc)
            raise NuGetConfigurationError(
                exc.strerror or str(exc), path
            ) from exc
