"""Tests for QR rendering, scanning and the code deck."""

from functools import partial

import pytest
from PIL import Image

from encoder import encode
from framing import InvalidInput
from qr_manager import CodeDeck, list_images, render_code


class TestCodeDeck:
    def _deck(self, count=4):
        rendered = []

        def fake_render(text):
            rendered.append(text)
            return Image.new("1", (1, 1))

        return CodeDeck([f"unit{i}" for i in range(count)], renderer=fake_render), rendered

    def test_starts_on_header(self):
        deck, _ = self._deck()
        assert deck.index == 0
        assert deck.current_text() == "unit0"
        assert deck.caption() == "Showing header QR Code"

    def test_next_wraps(self):
        deck, _ = self._deck(3)
        assert [deck.next() for _ in range(4)] == [1, 2, 0, 1]

    def test_previous_wraps(self):
        deck, _ = self._deck(3)
        assert [deck.previous() for _ in range(4)] == [2, 1, 0, 2]

    def test_data_caption(self):
        deck, _ = self._deck(4)
        deck.next()
        deck.next()
        assert deck.caption() == "Showing 2 of 3 data QR Codes"

    def test_images_rendered_once_on_demand(self):
        deck, rendered = self._deck(3)
        assert rendered == []
        deck.current_image()
        deck.current_image()
        deck.next()
        deck.current_image()
        assert rendered == ["unit0", "unit1"]

    def test_empty_deck_rejected(self):
        with pytest.raises(ValueError):
            CodeDeck([])


def test_render_code_returns_pil_image():
    img = render_code("HEADER:t.txt:5:3", box_size=4, border=2)
    assert isinstance(img, Image.Image)
    # version 1 symbol is 21 modules wide, plus the border on both sides
    assert img.size == ((21 + 4) * 4, (21 + 4) * 4)


def test_render_code_overflow():
    with pytest.raises(InvalidInput, match="do not fit"):
        render_code("A" * 5000, error_correction="H")


def test_deck_at_level_h_reports_overflow_as_invalid_input():
    units = encode(bytes(5000), "big.bin")
    deck = CodeDeck(units, renderer=partial(render_code, error_correction="H"))
    deck.next()
    with pytest.raises(InvalidInput, match="level H"):
        deck.current_image()


def test_default_payload_fits_largest_symbol():
    units = encode(bytes(range(256)) * 9, "big.bin")
    img = render_code(units[1], box_size=1, border=0)
    assert img.size[0] <= 177


def test_render_then_scan():
    pytest.importorskip("pyzbar.pyzbar", exc_type=ImportError)
    from qr_manager import scan_image

    units = encode(b"hello, air gap", "h.txt", max_payload_size=8)
    for unit in units:
        img = render_code(unit).convert("L")
        assert scan_image(img) == [unit]


def test_scan_blank_image():
    pytest.importorskip("pyzbar.pyzbar", exc_type=ImportError)
    from qr_manager import scan_image

    assert scan_image(Image.new("L", (200, 200), color=255)) == []


def test_list_images(tmp_path):
    for name in ("b.png", "a.JPG", "c.jpeg", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "sub.png").mkdir()
    assert [p.name for p in list_images(tmp_path)] == ["a.JPG", "b.png", "c.jpeg"]
