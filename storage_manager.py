"""
storage_manager.py
==================

Defines :class:`StorageManager`, which writes reconstructed files to a
local directory.  The file name arrives inside a scanned header, so it
is reduced to a single safe path component before use.

Example usage::

    from storage_manager import StorageManager

    storage = StorageManager("received")
    path = storage.save(b"hello", "notes.txt")

"""

from __future__ import annotations

import logging
import re
from pathlib import Path, PureWindowsPath
from typing import Union

from framing import StorageError

log = logging.getLogger(__name__)

FALLBACK_NAME = "received.bin"


def sanitize_filename(name: str) -> str:
    """Return a filesystem-safe name derived from a scanned display name.

    Directory components are dropped and any character that is not
    alphanumeric, dot, dash or underscore is replaced with an underscore.
    """
    base = PureWindowsPath(name).name  # splits on both / and \
    sanitized = re.sub(r"[^A-Za-z0-9_.\-]", "_", base)
    if sanitized.strip(".") == "":
        return FALLBACK_NAME
    return sanitized


class StorageManager:
    """Persists reconstructed files under one output directory."""

    def __init__(self, output_dir: Union[str, Path] = "received") -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, display_name: str) -> Path:
        return self.output_dir / sanitize_filename(display_name)

    def save(self, data: bytes, display_name: str) -> Path:
        """
        Write ``data`` to the output directory.

        Parameters
        ----------
        data:
            The reconstructed file contents.
        display_name:
            Name carried by the transfer header.  Existing files with the
            same sanitized name are overwritten.

        Returns
        -------
        Path
            Location of the written file.

        Raises
        ------
        StorageError
            If the directory cannot be created or the file cannot be written.
        """
        out_path = self.path_for(display_name)
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            with open(out_path, 'wb') as f:
                f.write(data)
        except OSError as exc:
            raise StorageError(f"Failed to save file: {exc}") from exc
        log.info("Saved %s (%d bytes)", out_path, len(data))
        return out_path
