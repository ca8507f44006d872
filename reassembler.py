"""
reassembler.py
==============

Concatenates the segments of a completed transfer session in sequence
order and checks the result against the size the header declared.

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from framing import IncompleteSession, InternalInconsistency, SizeMismatch

if TYPE_CHECKING:
    from decoder import TransferSession

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReassembledFile:
    data: bytes
    name: str


def reassemble(session: "TransferSession") -> ReassembledFile:
    """
    Rebuild the original bytes from a complete session.

    Parameters
    ----------
    session:
        Session holding a header and every segment it declares.

    Returns
    -------
    ReassembledFile
        The file contents together with the display name from the header.

    Raises
    ------
    IncompleteSession
        If no header has been received or segments are missing.
    InternalInconsistency
        If the segment count matches but a sequence number is absent.
    SizeMismatch
        If the assembled length differs from the header's size.
    """
    header = session.header
    if header is None:
        raise IncompleteSession("Header not scanned yet.")
    if len(session.segments) != header.segment_count:
        raise IncompleteSession(
            f"Missing segments.\n{len(session.segments)} out of {header.segment_count} received."
        )

    buffer = bytearray()
    for seq in range(1, header.segment_count + 1):
        segment = session.segments.get(seq)
        if segment is None:
            raise InternalInconsistency(f"Missing segment {seq}.")
        buffer.extend(segment)

    if len(buffer) != header.total_size:
        raise SizeMismatch(
            f"Error: Reconstructed file size ({len(buffer)}) does not match "
            f"file size ({header.total_size}) in header."
        )

    log.info("Reassembled %s (%d bytes)", header.name, len(buffer))
    return ReassembledFile(data=bytes(buffer), name=header.name)
