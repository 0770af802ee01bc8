"""
DocFlow Store — Durable Medium
==============================
Whole-file atomic rewrite for collection and counter files.

Rules:
- A write goes to a temp file in the target directory, is flushed and
  fsynced, then renamed over the target with os.replace().
- A reader sees the old file or the new file. Never a partial one.
- Reads never raise for a missing file: they return None.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger("docflow.store")


def read_text(path: Path) -> Optional[str]:
    """
    Return file content, or None if the file does not exist or is unreadable.

    Raises UnicodeDecodeError when the bytes are not UTF-8; callers
    treat that as malformed content.
    """
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning(f"Backing file {path} is not readable: {exc}")
        return None


def write_text_atomic(path: Path, content: str) -> None:
    """
    Atomically replace `path` with `content`.

    Raises OSError on failure; the previous file is left untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def quarantine(path: Path) -> Optional[Path]:
    """
    Copy a malformed file aside as `<name>.corrupt` before it gets rewritten.

    Returns the quarantine path, or None if the copy failed.
    """
    target = path.with_name(path.name + ".corrupt")
    try:
        shutil.copyfile(path, target)
    except OSError as exc:
        logger.warning(f"Could not quarantine malformed file {path}: {exc}")
        return None
    logger.warning(f"Malformed file {path} copied to {target}")
    return target
