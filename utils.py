"""
utils.py
========

This module contains small helpers shared by the command line tool and
the Streamlit app: environment loading, configuration retrieval and
logging setup.  Every setting can be placed in a ``.env`` file or the
process environment.

"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from framing import DEFAULT_MAX_PAYLOAD_SIZE

ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")


def load_env() -> None:
    """Load environment variables from a .env file if present."""
    # ``load_dotenv`` will silently ignore the absence of a .env file.
    load_dotenv()


def _get_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_max_payload_size() -> int:
    """
    Number of file bytes carried by each data QR code.

    Override with ``QR_MAX_PAYLOAD_SIZE``.  The default of 2210 keeps the
    base64 text of a full unit inside a version-40 symbol at level L;
    lower it when using a stronger error correction level.
    """
    return _get_positive_int("QR_MAX_PAYLOAD_SIZE", DEFAULT_MAX_PAYLOAD_SIZE)


def get_error_correction() -> str:
    """
    QR error correction level, one of ``L``, ``M``, ``Q`` or ``H``.

    Override with ``QR_ERROR_CORRECTION``; defaults to ``L`` for the
    highest capacity.
    """
    level = os.getenv("QR_ERROR_CORRECTION", "L").strip().upper()
    if level not in ERROR_CORRECTION_LEVELS:
        raise ValueError(
            f"QR_ERROR_CORRECTION must be one of {', '.join(ERROR_CORRECTION_LEVELS)}, got {level!r}"
        )
    return level


def get_box_size() -> int:
    """Pixels per QR module when rendering (``QR_BOX_SIZE``, default 10)."""
    return _get_positive_int("QR_BOX_SIZE", 10)


def get_output_dir() -> Path:
    """
    Directory where reconstructed files are written.

    You can override the default by setting the ``QR_OUTPUT_DIR``
    environment variable.  The default is ``"received"``.
    """
    return Path(os.getenv("QR_OUTPUT_DIR", "received"))


def get_log_level() -> int:
    """Logging level named by ``QR_LOG_LEVEL`` (default ``INFO``)."""
    name = os.getenv("QR_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"QR_LOG_LEVEL is not a logging level: {name!r}")
    return level


def configure_logging(level: Optional[int] = None) -> None:
    """Send log records to stderr at ``level`` or the configured level."""
    logging.basicConfig(
        level=get_log_level() if level is None else level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
