"""Tests for splitting files into header and data units."""

import base64

import pytest

from encoder import Encoder, encode
from framing import MAX_SEGMENTS, FileHeader, InvalidInput


def _decoded(units):
    return [base64.b64decode(u) for u in units[1:]]


def test_worked_example():
    units = encode(b"ABCDE", "t.txt", max_payload_size=2)
    assert units[0] == "HEADER:t.txt:5:3"
    assert _decoded(units) == [b"\x00\x01AB", b"\x00\x02CD", b"\x00\x03E"]


def test_exact_multiple_keeps_full_final_unit():
    units = encode(b"ABCDEF", "t.txt", max_payload_size=3)
    assert units[0] == "HEADER:t.txt:6:2"
    assert _decoded(units) == [b"\x00\x01ABC", b"\x00\x02DEF"]


def test_single_byte_file():
    units = encode(b"\xff", "one.bin", max_payload_size=2210)
    assert units == ["HEADER:one.bin:1:1", base64.b64encode(b"\x00\x01\xff").decode("ascii")]


def test_empty_file_gets_one_empty_segment():
    units = encode(b"", "empty.txt", max_payload_size=16)
    assert units[0] == "HEADER:empty.txt:0:1"
    assert _decoded(units) == [b"\x00\x01"]


def test_default_payload_size():
    data = bytes(5000)
    units = encode(data, "zeros.bin")
    assert units[0] == "HEADER:zeros.bin:5000:3"
    assert [len(b) - 2 for b in _decoded(units)] == [2210, 2210, 580]


def test_units_are_ascii_text():
    units = encode(bytes(range(256)), "all.bin", max_payload_size=100)
    for unit in units:
        assert unit.isascii()


def test_input_not_mutated():
    data = bytearray(b"hello world")
    encode(data, "h.txt", max_payload_size=4)
    assert data == bytearray(b"hello world")


def test_plan_returns_structured_units():
    header, units = Encoder(max_payload_size=4).plan(b"0123456789", "n.txt")
    assert header == FileHeader(name="n.txt", total_size=10, segment_count=3)
    assert [u.sequence_number for u in units] == [1, 2, 3]
    assert [u.payload for u in units] == [b"0123", b"4567", b"89"]


class TestInvalidInput:
    def test_name_with_delimiter(self):
        with pytest.raises(InvalidInput, match="must not contain"):
            encode(b"x", "a:b.txt", max_payload_size=4)

    def test_empty_name(self):
        with pytest.raises(InvalidInput, match="must not be empty"):
            encode(b"x", "", max_payload_size=4)

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_payload_size(self, size):
        with pytest.raises(InvalidInput, match="positive"):
            Encoder(size)

    @pytest.mark.parametrize("size", [2.5, "10", True])
    def test_non_integer_payload_size(self, size):
        with pytest.raises(InvalidInput, match="integer"):
            Encoder(size)

    def test_too_many_segments(self):
        with pytest.raises(InvalidInput, match="at most 65535"):
            encode(bytes(MAX_SEGMENTS + 1), "big.bin", max_payload_size=1)

    def test_max_segments_allowed(self):
        units = encode(bytes(MAX_SEGMENTS), "big.bin", max_payload_size=1)
        assert len(units) == MAX_SEGMENTS + 1
        assert base64.b64decode(units[-1])[:2] == b"\xff\xff"
