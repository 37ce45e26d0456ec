# Overview: Durable storage of visit photos on the local filesystem.

from __future__ import annotations

import os
import re
import time

from werkzeug.utils import secure_filename

FILENAME_PREFIX = "store_"
_WHITESPACE_RE = re.compile(r"\s+")
# Path separators, NUL and other characters that are not portable in file names
_UNSAFE_RE = re.compile(r"[\\/\x00:*?\"<>|]")


class EvidenceStorageError(Exception):
    """Raised when the photo cannot be written."""


def sanitize_name(name: str | None) -> str:
    """
    Trim, collapse whitespace runs to underscores and replace characters
    that could act as path separators, so the result is a single path
    component.
    """
    if name is None:
        return ""
    cleaned = _WHITESPACE_RE.sub("_", name.strip())
    return _UNSAFE_RE.sub("_", cleaned)


def build_photo_filename(agent_name: str, store_name: str, original_filename: str | None, stamp: int) -> str:
    # Original name keeps its extension; path separators and the like are stripped.
    original = secure_filename(original_filename or "") or "photo"
    return f"{FILENAME_PREFIX}{sanitize_name(store_name)}_{sanitize_name(agent_name)}_{stamp}_{original}"


def save_visit_photo(
    agent_name: str,
    store_name: str,
    content: bytes,
    original_filename: str | None,
    root: str,
) -> str:
    """
    Write the photo under ``root`` and return the stored path.

    The nanosecond timestamp keeps names distinct for the same agent and
    store; the file is opened in exclusive mode so an existing file is
    never overwritten.
    """
    try:
        os.makedirs(root, exist_ok=True)
    except OSError as exc:
        raise EvidenceStorageError(f"Could not create evidence directory {root}") from exc

    while True:
        filename = build_photo_filename(agent_name, store_name, original_filename, time.time_ns())
        path = os.path.join(root, filename)
        try:
            with open(path, "xb") as fh:
                fh.write(content)
        except FileExistsError:
            continue
        except OSError as exc:
            raise EvidenceStorageError(f"Could not write evidence file {path}") from exc
        return path


def discard_visit_photo(path: str | None) -> bool:
    """Remove a stored photo. Returns False when nothing was removed."""
    if not path:
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True
