"""
decoder.py
==========

Incremental receiver for scanned QR units.  A :class:`Decoder` owns one
:class:`TransferSession` and advances it by exactly one transition per
call to :meth:`Decoder.submit`.  Units may arrive in any order and may
repeat; a repeated segment is reported but never overwrites the copy
already held.

``submit`` never raises for bad scans.  Every rejection comes back as a
:class:`StatusEvent` of kind ``ERROR`` carrying the typed
:class:`~framing.TransferError`, so a UI can show ``event.message`` and
carry on scanning.

"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from framing import (
    DataUnit,
    FileHeader,
    HeaderMissing,
    SequenceOutOfRange,
    TransferError,
    is_header_text,
)
from reassembler import ReassembledFile, reassemble

log = logging.getLogger(__name__)

AWAITING_HEADER_MESSAGE = "Please scan the header QR code."


class DecoderState(enum.Enum):
    AWAITING_HEADER = "awaiting_header"
    COLLECTING = "collecting"
    COMPLETE = "complete"


class StatusKind(enum.Enum):
    HEADER_ACCEPTED = "header_accepted"
    SEGMENT_ACCEPTED = "segment_accepted"
    DUPLICATE = "duplicate"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class StatusEvent:
    """Outcome of one :meth:`Decoder.submit` call."""

    kind: StatusKind
    message: str
    sequence_number: Optional[int] = None
    error: Optional[TransferError] = None

    @property
    def ok(self) -> bool:
        return self.kind is not StatusKind.ERROR


@dataclass
class TransferSession:
    """Everything the receiver has accumulated for one transfer."""

    header: Optional[FileHeader] = None
    segments: Dict[int, bytes] = field(default_factory=dict)

    @property
    def has_header(self) -> bool:
        return self.header is not None

    def is_complete(self) -> bool:
        return self.header is not None and len(self.segments) == self.header.segment_count

    def missing(self) -> Tuple[int, ...]:
        """Sequence numbers not yet received, in ascending order."""
        if self.header is None:
            return ()
        return tuple(i for i in range(1, self.header.segment_count + 1) if i not in self.segments)

    def clear(self) -> None:
        self.header = None
        self.segments = {}


class Decoder:
    """State machine that folds scanned units back into a file."""

    def __init__(self) -> None:
        self.session = TransferSession()

    @property
    def state(self) -> DecoderState:
        if not self.session.has_header:
            return DecoderState.AWAITING_HEADER
        if self.session.is_complete():
            return DecoderState.COMPLETE
        return DecoderState.COLLECTING

    def submit(self, raw_text: str) -> StatusEvent:
        """
        Apply one scanned text string to the session.

        Parameters
        ----------
        raw_text:
            Exactly the text decoded from one QR code.

        Returns
        -------
        StatusEvent
            What happened.  The session is unchanged for ``ERROR`` and
            ``DUPLICATE`` events.
        """
        try:
            if is_header_text(raw_text):
                return self._accept_header(raw_text)
            return self._accept_data(raw_text)
        except TransferError as exc:
            log.warning("Rejected scan (%s): %s", type(exc).__name__, exc)
            return StatusEvent(kind=StatusKind.ERROR, message=str(exc), error=exc)

    def _accept_header(self, raw_text: str) -> StatusEvent:
        header = FileHeader.from_text(raw_text)
        if self.session.has_header:
            log.info("New header replaces %s; discarding %d segments",
                     self.session.header.name, len(self.session.segments))
        # A new header starts a new transfer; old segments may not belong to it.
        self.session.header = header
        self.session.segments = {}
        log.info("Header accepted: %s, %d bytes, %d segments",
                 header.name, header.total_size, header.segment_count)
        return StatusEvent(
            kind=StatusKind.HEADER_ACCEPTED,
            message=(
                f"Header received:\nFile: {header.name}\nSize: {header.total_size} bytes\n"
                f"Expecting {header.segment_count} data segments."
            ),
        )

    def _accept_data(self, raw_text: str) -> StatusEvent:
        header = self.session.header
        if header is None:
            raise HeaderMissing("Header not scanned yet.")

        unit = DataUnit.from_text(raw_text, allow_empty=header.total_size == 0)
        seq = unit.sequence_number
        if not 1 <= seq <= header.segment_count:
            raise SequenceOutOfRange(
                f"Invalid sequence number {seq}; expected 1 to {header.segment_count}."
            )

        if seq in self.session.segments:
            log.debug("Duplicate segment %d", seq)
            return StatusEvent(
                kind=StatusKind.DUPLICATE,
                message=f"Segment {seq} already scanned.",
                sequence_number=seq,
            )

        self.session.segments[seq] = unit.payload
        log.debug("Stored segment %d (%d bytes)", seq, len(unit.payload))
        if self.session.is_complete():
            log.info("All %d segments received for %s", header.segment_count, header.name)
            return StatusEvent(
                kind=StatusKind.COMPLETE,
                message="All segments received!\nYou can now save the file.",
                sequence_number=seq,
            )
        return StatusEvent(
            kind=StatusKind.SEGMENT_ACCEPTED,
            message=f"Received segment {seq} of {header.segment_count}.",
            sequence_number=seq,
        )

    def is_complete(self) -> bool:
        return self.state is DecoderState.COMPLETE

    def progress(self) -> Tuple[int, int]:
        """Return ``(received, total)``; ``(0, 0)`` before a header arrives."""
        if self.session.header is None:
            return 0, 0
        return len(self.session.segments), self.session.header.segment_count

    def reset(self) -> None:
        """Drop all accumulated state and wait for a header again."""
        self.session.clear()
        log.debug("Decoder reset")

    def finish(self) -> ReassembledFile:
        """
        Reassemble the completed transfer and reset the decoder.

        The session is left untouched when reassembly fails so that the
        caller can inspect it; :meth:`reset` is the only way out.
        """
        result = reassemble(self.session)
        self.reset()
        return result
