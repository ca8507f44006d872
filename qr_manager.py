"""
qr_manager.py
=============

Bridges transfer units and pictures.  Rendering uses the ``qrcode``
package with Pillow images; scanning uses ``pyzbar`` (bindings to the
zbar barcode reader) over Pillow images.  Nothing here knows about the
framing: a unit goes in as text and comes back out as text.

:class:`CodeDeck` holds the rendered codes of one encoded file and the
current position of a presenter stepping through them.

"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Union

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

from framing import InvalidInput

log = logging.getLogger(__name__)

ERROR_LEVEL_MAP = {
    'L': qrcode.constants.ERROR_CORRECT_L,
    'M': qrcode.constants.ERROR_CORRECT_M,
    'Q': qrcode.constants.ERROR_CORRECT_Q,
    'H': qrcode.constants.ERROR_CORRECT_H,
}

IMAGE_SUFFIXES = {'.png', '.jpg', '.jpeg'}


def render_code(
    text: str,
    error_correction: str = 'L',
    box_size: int = 10,
    border: int = 4,
) -> Image.Image:
    """
    Render ``text`` as a black on white QR code.

    :param text: The unit text to encode.
    :param error_correction: One of ``'L'``, ``'M'``, ``'Q'`` or ``'H'``.
    :param box_size: Pixels per module.
    :param border: Quiet zone width in modules.
    :raises InvalidInput: If ``text`` does not fit in the largest symbol
        at the requested error correction level.
    """
    err_corr = ERROR_LEVEL_MAP.get(error_correction.upper(), qrcode.constants.ERROR_CORRECT_L)
    qr = qrcode.QRCode(
        version=None,  # let qrcode determine minimal version
        error_correction=err_corr,
        box_size=box_size,
        border=border,
    )
    qr.add_data(text)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        # qrcode 8 reports an overflow as an invalid version 41
        raise InvalidInput(
            f"{len(text)} characters do not fit in one QR code at level {error_correction}; "
            "lower the payload size."
        ) from exc
    img = qr.make_image(fill_color="black", back_color="white")
    return img.get_image()


def scan_image(image: Image.Image) -> List[str]:
    """
    Return the text of every QR code found in ``image``.

    Payloads that are not UTF-8 are decoded as Latin-1 so that a
    garbled scan still reaches the decoder, which will reject it.
    """
    try:
        from pyzbar.pyzbar import ZBarSymbol, decode as qr_decode
    except ImportError as exc:
        raise RuntimeError("Missing dependency: install 'pyzbar' and the zbar library to decode QR codes") from exc

    texts: List[str] = []
    for code in qr_decode(image, symbols=[ZBarSymbol.QRCODE]):
        try:
            texts.append(code.data.decode('utf-8'))
        except UnicodeDecodeError:
            texts.append(code.data.decode('latin1'))
    log.debug("Found %d QR codes in image", len(texts))
    return texts


def scan_file(path: Union[str, Path]) -> List[str]:
    """Open an image file and scan it with :func:`scan_image`."""
    with Image.open(path) as img:
        return scan_image(img)


def list_images(input_dir: Path) -> List[Path]:
    """Image files directly inside ``input_dir``, sorted by name."""
    return sorted(
        f for f in input_dir.iterdir() if f.is_file() and f.suffix.lower() in IMAGE_SUFFIXES
    )


class CodeDeck:
    """The rendered codes of one file and a wrap-around cursor over them."""

    def __init__(
        self,
        units: Sequence[str],
        renderer: Callable[[str], Image.Image] = render_code,
    ) -> None:
        if not units:
            raise ValueError("A code deck needs at least the header unit")
        self.units = list(units)
        self.index = 0
        self._renderer = renderer
        self._images: Dict[int, Image.Image] = {}

    def __len__(self) -> int:
        return len(self.units)

    def next(self) -> int:
        self.index = (self.index + 1) % len(self.units)
        return self.index

    def previous(self) -> int:
        self.index = (self.index - 1 + len(self.units)) % len(self.units)
        return self.index

    def current_text(self) -> str:
        return self.units[self.index]

    def image_at(self, index: int) -> Image.Image:
        if index not in self._images:
            self._images[index] = self._renderer(self.units[index])
        return self._images[index]

    def current_image(self) -> Image.Image:
        return self.image_at(self.index)

    def caption(self) -> str:
        """Describe the current code for the person holding the camera."""
        if self.index == 0:
            return "Showing header QR Code"
        return f"Showing {self.index} of {len(self.units) - 1} data QR Codes"
