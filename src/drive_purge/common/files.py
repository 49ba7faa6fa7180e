"""Helpers for files that hold secrets."""

import os
from pathlib import Path

PRIVATE_MODE = 0o600


def write_private_file(path: Path, text: str) -> None:
    """Write text to a file readable only by the current user.

    The file is created with owner-only permissions, and an existing file is
    tightened before any content is written to it.

    Args:
        path: File to create or replace
        text: Content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        os.chmod(path, PRIVATE_MODE)
        f.write(text)
