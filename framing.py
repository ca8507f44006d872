"""
framing.py
==========

Shared wire-format definitions for the QR file bridge.  Both the encoder
and the decoder import from here so that the two sides agree byte for
byte on how a transfer is framed.

A transfer is made of two kinds of *unit*, each of which is one text
string rendered into one QR code:

Header unit::

    HEADER:<name>:<total size in bytes>:<segment count>

Data unit::

    base64( [2-byte big-endian sequence number][payload bytes] )

Sequence numbers start at 1.  A zero-byte file still produces one data
unit, whose payload is empty.

"""

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass

HEADER_TAG = "HEADER"
FIELD_DELIMITER = ":"
HEADER_PREFIX = HEADER_TAG + FIELD_DELIMITER
HEADER_FIELD_COUNT = 4

SEQUENCE_FORMAT = ">H"
SEQUENCE_SIZE = struct.calcsize(SEQUENCE_FORMAT)
MAX_SEGMENTS = 0xFFFF

# Leaves room for base64 expansion under the ~2953 byte capacity of a
# version-40 symbol at error correction level L.
DEFAULT_MAX_PAYLOAD_SIZE = 2210


class TransferError(Exception):
    """Base class for every error raised by the transfer core."""


class InvalidInput(TransferError):
    """Bad arguments handed to the encoder."""


class MalformedHeader(TransferError):
    """A header-tagged unit that cannot be parsed."""


class HeaderMissing(TransferError):
    """A data unit arrived before any header."""


class MalformedPayload(TransferError):
    """A data unit that is not valid base64 or is too short."""


class SequenceOutOfRange(TransferError):
    """A data unit whose sequence number falls outside the header's range."""


class IncompleteSession(TransferError):
    """Reassembly was requested before every segment arrived."""


class SizeMismatch(TransferError):
    """The reassembled length disagrees with the header."""


class InternalInconsistency(TransferError):
    """Session bookkeeping contradicts itself."""


class StorageError(TransferError):
    """Persisting a reconstructed file failed."""


@dataclass(frozen=True)
class FileHeader:
    """Descriptor for a whole transfer."""

    name: str
    total_size: int
    segment_count: int

    def to_text(self) -> str:
        """Render the header as its wire string."""
        return FIELD_DELIMITER.join(
            [HEADER_TAG, self.name, str(self.total_size), str(self.segment_count)]
        )

    @classmethod
    def from_text(cls, text: str) -> "FileHeader":
        """
        Parse a header wire string.

        Raises
        ------
        MalformedHeader
            If the tag is wrong, the field count is not four, the name is
            empty, or the size and count are not decimal integers.
        """
        fields = text.split(FIELD_DELIMITER)
        if len(fields) != HEADER_FIELD_COUNT:
            raise MalformedHeader(
                f"Invalid header format: expected {HEADER_FIELD_COUNT} fields, got {len(fields)}."
            )
        tag, name, size_text, count_text = fields
        if tag != HEADER_TAG:
            raise MalformedHeader(f"Invalid header tag {tag!r}.")
        if not name:
            raise MalformedHeader("Header carries an empty file name.")
        total_size = _parse_count(size_text, "size")
        segment_count = _parse_count(count_text, "segment count")
        if segment_count < 1:
            raise MalformedHeader("Header declares zero data segments.")
        if segment_count > MAX_SEGMENTS:
            raise MalformedHeader(f"Header declares {segment_count} segments, limit is {MAX_SEGMENTS}.")
        return cls(name=name, total_size=total_size, segment_count=segment_count)


@dataclass(frozen=True)
class DataUnit:
    """One sequence-tagged slice of the file."""

    sequence_number: int
    payload: bytes

    def to_text(self) -> str:
        """Prefix the payload with its sequence number and base64 encode it."""
        prefix = struct.pack(SEQUENCE_FORMAT, self.sequence_number)
        return base64.b64encode(prefix + self.payload).decode("ascii")

    @classmethod
    def from_text(cls, text: str, allow_empty: bool = False) -> "DataUnit":
        """
        Decode a data wire string.

        ``allow_empty`` admits a unit that carries only the sequence
        prefix, which is how a zero-byte file travels.

        Raises
        ------
        MalformedPayload
            If ``text`` is not strict base64 or decodes to too few bytes.
        """
        try:
            raw = base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MalformedPayload("Failed to decode base64 data.") from exc
        minimum = SEQUENCE_SIZE if allow_empty else SEQUENCE_SIZE + 1
        if len(raw) < minimum:
            raise MalformedPayload("Scanned data is too short.")
        (sequence_number,) = struct.unpack(SEQUENCE_FORMAT, raw[:SEQUENCE_SIZE])
        return cls(sequence_number=sequence_number, payload=raw[SEQUENCE_SIZE:])


def is_header_text(text: str) -> bool:
    """Return ``True`` if ``text`` carries the header tag."""
    return text.startswith(HEADER_PREFIX)


def segment_count_for(total_size: int, max_payload_size: int) -> int:
    """
    Number of data units needed for ``total_size`` bytes.

    Ceiling division, with a floor of one so that an empty file still
    produces a single (empty) data unit.
    """
    return max(1, (total_size + max_payload_size - 1) // max_payload_size)


def _parse_count(text: str, label: str) -> int:
    # int() would also accept signs, whitespace and underscores
    if not (text.isascii() and text.isdigit()):
        raise MalformedHeader(f"Header contains invalid {label} {text!r}.")
    return int(text)
