"""
encoder.py
==========

Turns a file's bytes into the ordered list of text units that are shown
as QR codes: the header first, then one data unit per segment in file
order.

Example usage::

    from encoder import encode

    units = encode(b"ABCDE", "t.txt", max_payload_size=2)
    # ['HEADER:t.txt:5:3', 'AAFBQg==', 'AAJDRA==', 'AANF']

"""

from __future__ import annotations

import logging
from typing import List, Tuple

from framing import (
    DEFAULT_MAX_PAYLOAD_SIZE,
    FIELD_DELIMITER,
    MAX_SEGMENTS,
    DataUnit,
    FileHeader,
    InvalidInput,
    segment_count_for,
)

log = logging.getLogger(__name__)


class Encoder:
    """Splits byte buffers into framed units for a fixed payload size."""

    def __init__(self, max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE) -> None:
        """
        Create a new :class:`Encoder`.

        Parameters
        ----------
        max_payload_size:
            Number of file bytes carried by each data unit before the
            sequence prefix and base64 expansion are applied.
        """
        if isinstance(max_payload_size, bool) or not isinstance(max_payload_size, int):
            raise InvalidInput(f"max_payload_size must be an integer, got {max_payload_size!r}.")
        if max_payload_size < 1:
            raise InvalidInput(f"max_payload_size must be positive, got {max_payload_size}.")
        self.max_payload_size = max_payload_size

    def plan(self, file_bytes: bytes, display_name: str) -> Tuple[FileHeader, List[DataUnit]]:
        """
        Build the header and data units for ``file_bytes``.

        Parameters
        ----------
        file_bytes:
            The complete contents of the file.  It is only read.
        display_name:
            File name shown to (and saved by) the receiver.

        Returns
        -------
        tuple
            The :class:`FileHeader` and the data units in sequence order.

        Raises
        ------
        InvalidInput
            If the name is empty or contains the field delimiter, or if
            the file needs more segments than a two-byte sequence number
            can address.
        """
        if not display_name:
            raise InvalidInput("File name must not be empty.")
        if FIELD_DELIMITER in display_name:
            raise InvalidInput(f"File name {display_name!r} must not contain {FIELD_DELIMITER!r}.")

        data = bytes(file_bytes)
        total_size = len(data)
        segment_count = segment_count_for(total_size, self.max_payload_size)
        if segment_count > MAX_SEGMENTS:
            raise InvalidInput(
                f"File of {total_size} bytes needs {segment_count} segments; "
                f"at most {MAX_SEGMENTS} are supported. Increase the payload size."
            )

        header = FileHeader(name=display_name, total_size=total_size, segment_count=segment_count)
        units: List[DataUnit] = []
        for seq in range(1, segment_count + 1):
            start = (seq - 1) * self.max_payload_size
            end = min(seq * self.max_payload_size, total_size)
            units.append(DataUnit(sequence_number=seq, payload=data[start:end]))

        log.info(
            "Encoded %s: %d bytes in %d segments of up to %d bytes",
            display_name, total_size, segment_count, self.max_payload_size,
        )
        return header, units

    def encode(self, file_bytes: bytes, display_name: str) -> List[str]:
        """Return the header text followed by every data unit's text."""
        header, units = self.plan(file_bytes, display_name)
        return [header.to_text()] + [unit.to_text() for unit in units]


def encode(
    file_bytes: bytes,
    display_name: str,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> List[str]:
    """Encode ``file_bytes`` into header and data unit strings."""
    return Encoder(max_payload_size).encode(file_bytes, display_name)
