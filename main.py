#!/usr/bin/env python3
"""
main.py
=======

Command line front end for the QR file bridge.  It moves a single file
between two machines that share no network by turning it into a series
of QR code images and, on the other side, folding scanned images back
into the original bytes.

Rationale
---------

A version-40 QR symbol with low error correction stores up to 2 953
bytes in byte mode.  Every data code carries a two-byte sequence number
plus up to ``QR_MAX_PAYLOAD_SIZE`` file bytes (2 210 by default), base64
encoded, which keeps the text within that limit.  The first code is a
plain-text header naming the file and its size, so the receiver knows
when it has everything.

Dependencies
------------

Encoding uses the ``qrcode`` and ``Pillow`` packages.  Decoding uses
``pyzbar`` (which needs the zbar shared library) and ``Pillow``::

    pip install qrcode[pil] pyzbar pillow python-dotenv

Usage
-----

### Encoding

::

    python main.py encode --file report.pdf --output /path/to/qr_output

Writes ``report.pdf-000.png`` (the header) followed by one image per
data segment.  Show them to the receiving camera in any order.

### Decoding

::

    python main.py decode --input /path/to/scanned_images --output received

Scans every image in ``input``, reports each code as it is applied and
writes the reconstructed file into ``output`` once every segment has
been seen.  Duplicate images are harmless.

### Raw units

::

    python main.py units --file report.pdf

Prints the unit texts one per line for use with another QR tool.

"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from decoder import Decoder, StatusKind
from encoder import Encoder
from framing import TransferError, is_header_text
from qr_manager import list_images, render_code, scan_file
from storage_manager import StorageManager, sanitize_filename
from utils import (
    ERROR_CORRECTION_LEVELS,
    configure_logging,
    get_box_size,
    get_error_correction,
    get_max_payload_size,
    get_output_dir,
    load_env,
)


def encode_file(
    file_path: Path,
    output_dir: Path,
    display_name: Optional[str] = None,
    chunk_size: Optional[int] = None,
    error_correction: Optional[str] = None,
) -> List[Path]:
    """Encode ``file_path`` into QR code images saved under ``output_dir``.

    :param file_path: The file to send.
    :param output_dir: Directory where QR code images will be saved.  It will
        be created if it does not exist.
    :param display_name: Name announced in the header.  Defaults to the
        file's own name.
    :param chunk_size: File bytes per data code.  Defaults to
        ``QR_MAX_PAYLOAD_SIZE``.
    :param error_correction: ``'L'``, ``'M'``, ``'Q'`` or ``'H'``.  Defaults
        to ``QR_ERROR_CORRECTION``.
    :returns: The image paths, header first.
    """
    name = display_name or file_path.name
    encoder = Encoder(chunk_size if chunk_size is not None else get_max_payload_size())
    level = error_correction or get_error_correction()
    box_size = get_box_size()

    with open(file_path, 'rb') as f:
        data_bytes = f.read()
    units = encoder.encode(data_bytes, name)

    output_dir.mkdir(parents=True, exist_ok=True)
    sanitized = sanitize_filename(name)
    digits = max(3, len(str(len(units) - 1)))
    written: List[Path] = []
    for idx, unit in enumerate(units):
        img = render_code(unit, error_correction=level, box_size=box_size)
        img_path = output_dir / f"{sanitized}-{str(idx).zfill(digits)}.png"
        img.save(img_path)
        written.append(img_path)
        label = "header" if idx == 0 else f"segment {idx}/{len(units) - 1}"
        print(f"Created {img_path} for {name} {label}")
    return written


def decode_images(input_dir: Path, output_dir: Path) -> Optional[Path]:
    """Scan QR code images in ``input_dir`` and reconstruct the file.

    Every image is scanned first.  Header codes are then submitted ahead
    of data codes to one :class:`~decoder.Decoder`, so the order the
    photos were taken in does not matter.  Returns the saved path, or
    ``None`` when the transfer could not be completed.
    """
    scanned: List[Tuple[Path, str]] = []
    for img_file in list_images(input_dir):
        try:
            texts = scan_file(img_file)
        except OSError as e:
            print(f"Warning: could not open {img_file}: {e}", file=sys.stderr)
            continue
        if not texts:
            print(f"Warning: no QR code found in {img_file}", file=sys.stderr)
            continue
        scanned.extend((img_file, text) for text in texts)

    decoder = Decoder()
    for img_file, text in sorted(scanned, key=lambda item: not is_header_text(item[1])):
        event = decoder.submit(text)
        stream = sys.stderr if event.kind is StatusKind.ERROR else sys.stdout
        message = event.message.replace("\n", " ")
        print(f"{img_file.name}: {message}", file=stream)

    received, total = decoder.progress()
    if not decoder.is_complete():
        if total == 0:
            print("Error: no header QR code found.", file=sys.stderr)
        else:
            missing = list(decoder.session.missing())
            print(f"Error: received {received} of {total} segments; missing {missing}", file=sys.stderr)
        return None

    try:
        result = decoder.finish()
        out_path = StorageManager(output_dir).save(result.data, result.name)
    except TransferError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None
    print(f"Reconstructed {out_path} ({len(result.data)} bytes)")
    return out_path


def print_units(file_path: Path, display_name: Optional[str] = None, chunk_size: Optional[int] = None) -> None:
    with open(file_path, 'rb') as f:
        data_bytes = f.read()
    encoder = Encoder(chunk_size if chunk_size is not None else get_max_payload_size())
    for unit in encoder.encode(data_bytes, display_name or file_path.name):
        print(unit)


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    configure_logging()
    parser = argparse.ArgumentParser(
        description="Send or receive a file as a series of QR codes for air-gapped transfer."
    )
    subparsers = parser.add_subparsers(dest='command', required=True)
    # Encode subcommand
    enc_parser = subparsers.add_parser('encode', help='Encode a file into QR code images')
    enc_parser.add_argument('--file', required=True, type=Path, help='File to encode')
    enc_parser.add_argument('--output', required=True, type=Path, help='Directory to save QR images')
    enc_parser.add_argument('--name', help='File name announced to the receiver (default: the file name)')
    enc_parser.add_argument(
        '--chunk-size', type=int, default=None,
        help='File bytes per data QR code (default QR_MAX_PAYLOAD_SIZE or 2210)'
    )
    enc_parser.add_argument(
        '--error-correction', choices=list(ERROR_CORRECTION_LEVELS), default=None,
        help='QR code error correction level (default QR_ERROR_CORRECTION or L)'
    )

    # Decode subcommand
    dec_parser = subparsers.add_parser('decode', help='Decode QR code images and reconstruct the file')
    dec_parser.add_argument('--input', required=True, type=Path, help='Directory containing scanned QR images')
    dec_parser.add_argument('--output', type=Path, default=None,
                            help='Directory to write the reconstructed file (default QR_OUTPUT_DIR)')

    # Units subcommand
    units_parser = subparsers.add_parser('units', help='Print the unit texts without rendering')
    units_parser.add_argument('--file', required=True, type=Path, help='File to encode')
    units_parser.add_argument('--name', help='File name announced to the receiver')
    units_parser.add_argument('--chunk-size', type=int, default=None, help='File bytes per data unit')

    args = parser.parse_args(argv)
    try:
        if args.command == 'encode':
            encode_file(args.file, args.output, args.name, args.chunk_size, args.error_correction)
        elif args.command == 'decode':
            if decode_images(args.input, args.output or get_output_dir()) is None:
                return 1
        elif args.command == 'units':
            print_units(args.file, args.name, args.chunk_size)
        else:
            parser.print_help()
            return 1
    except (TransferError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
