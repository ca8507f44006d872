"""
ui_manager.py
==============

Defines :class:`UIManager` which orchestrates the Streamlit user interface
for the QR file bridge.  The class encapsulates all Streamlit calls and
keeps every piece of per-browser state in ``st.session_state``:

* **QR To File** scans codes from the camera or from uploaded photos,
  feeds them to a :class:`~decoder.Decoder` and saves the file through a
  :class:`~storage_manager.StorageManager` once every segment is in.
* **File To QR** encodes an uploaded file and steps through its codes
  one at a time so they can be shown to the receiving camera.

The transfer logic itself lives in :mod:`encoder`, :mod:`decoder` and
:mod:`reassembler`; this module only maps their results to widgets.

"""

from __future__ import annotations

import hashlib
import io
import logging
from functools import partial

import streamlit as st
from PIL import Image

from decoder import AWAITING_HEADER_MESSAGE, Decoder
from encoder import Encoder
from framing import TransferError
from qr_manager import CodeDeck, render_code, scan_image
from reassembler import reassemble
from storage_manager import StorageManager

log = logging.getLogger(__name__)


class UIManager:
    """Manages all Streamlit UI components for the QR file bridge."""

    def __init__(
        self,
        storage: StorageManager,
        max_payload_size: int,
        error_correction: str = "L",
        box_size: int = 10,
    ) -> None:
        self.storage = storage
        self.encoder = Encoder(max_payload_size)
        self.renderer = partial(render_code, error_correction=error_correction, box_size=box_size)
        self.init_session_state()

    def init_session_state(self) -> None:
        """Initialize Streamlit session state variables used by the UI."""
        defaults = {
            'decoder': None,
            'status_message': AWAITING_HEADER_MESSAGE,
            'status_is_error': False,
            'scanned_digests': set(),
            'saved_file': None,
            'code_deck': None,
            'deck_file_name': "",
            'encode_error': "",
            'encoded_digest': None,
            'scan_uploader_key': 0,
            'send_uploader_key': 0,
        }
        for key, val in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = val
        if st.session_state.decoder is None:
            st.session_state.decoder = Decoder()

    def render(self) -> None:
        """Render both views as tabs."""
        scan_tab, show_tab = st.tabs(["QR To File", "File To QR"])
        with scan_tab:
            self.render_qr_to_file()
        with show_tab:
            self.render_file_to_qr()

    # ── receiving ────────────────────────────────────────────────────

    def render_qr_to_file(self) -> None:
        """
        Render the receiving view: status, progress, scanners and the
        save/reset controls.
        """
        decoder: Decoder = st.session_state.decoder
        status_box = st.empty()

        photo = st.camera_input("Point the camera at a QR code", key=f"camera_scan_{st.session_state.scan_uploader_key}")
        if photo is not None:
            self.process_photo(photo.getvalue())

        uploads = st.file_uploader(
            "Or upload photos of QR codes",
            type=['png', 'jpg', 'jpeg'],
            accept_multiple_files=True,
            key=f"scan_uploads_{st.session_state.scan_uploader_key}",
        )
        for upload in uploads or []:
            self.process_photo(upload.getvalue())

        received, total = decoder.progress()
        status = st.session_state.status_message
        if total:
            status += f"\nReceived {received} of {total} segments."
        if st.session_state.status_is_error:
            status_box.error(status)
        else:
            status_box.info(status)

        if decoder.is_complete():
            if st.button("Save File", key="save_file", type="primary", use_container_width=True):
                self.save_file()
                st.rerun()

        saved = st.session_state.saved_file
        if saved is not None:
            name, data = saved
            st.download_button("Download " + name, data=data, file_name=name, key="download_file")

        if st.button("Reset", key="reset_scanning", use_container_width=True):
            self.reset_scanning()
            st.rerun()

    def process_photo(self, image_bytes: bytes) -> None:
        """Scan one photo and submit every code in it, once per photo."""
        digest = hashlib.sha256(image_bytes).hexdigest()
        if digest in st.session_state.scanned_digests:
            return
        st.session_state.scanned_digests.add(digest)

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                texts = scan_image(img)
        except (OSError, RuntimeError) as e:
            self.set_status(f"Scanning failed: {e}", is_error=True)
            return
        if not texts:
            self.set_status("No QR code found in the photo.", is_error=True)
            return

        decoder: Decoder = st.session_state.decoder
        for text in texts:
            event = decoder.submit(text)
            self.set_status(event.message, is_error=not event.ok)

    def save_file(self) -> None:
        """Reassemble the completed transfer, persist it and start over."""
        decoder: Decoder = st.session_state.decoder
        try:
            result = reassemble(decoder.session)
            out_path = self.storage.save(result.data, result.name)
        except TransferError as e:
            self.set_status(str(e), is_error=True)
            return
        st.session_state.saved_file = (out_path.name, result.data)
        decoder.reset()
        # Fresh scan widgets, so the photo still held by the camera is not resubmitted.
        st.session_state.scanned_digests = set()
        st.session_state.scan_uploader_key += 1
        self.set_status(f"File saved to:\n{out_path}")

    def reset_scanning(self) -> None:
        st.session_state.decoder.reset()
        st.session_state.scanned_digests = set()
        st.session_state.saved_file = None
        st.session_state.scan_uploader_key += 1
        self.set_status(AWAITING_HEADER_MESSAGE)

    def set_status(self, message: str, is_error: bool = False) -> None:
        st.session_state.status_message = message
        st.session_state.status_is_error = is_error

    # ── sending ──────────────────────────────────────────────────────

    def render_file_to_qr(self) -> None:
        """
        Render the sending view: file picker, the current code and the
        navigation buttons.
        """
        uploaded_file = st.file_uploader(
            "Select File",
            key=f"send_file_{st.session_state.send_uploader_key}",
        )
        if uploaded_file is not None:
            self.load_file(uploaded_file.name, uploaded_file.getvalue())

        if st.session_state.encode_error:
            st.error(st.session_state.encode_error)

        deck: CodeDeck = st.session_state.code_deck
        if deck is None:
            return

        st.write(f"{st.session_state.deck_file_name} selected.")
        try:
            st.image(deck.current_image(), use_container_width=True)
        except TransferError as e:
            st.error(f"Failed to generate QR code: {e}")
        st.caption(deck.caption())

        col1, col2 = st.columns(2)
        with col1:
            if st.button("Previous QR Code", key="prev_code", use_container_width=True):
                deck.previous()
                st.rerun()
        with col2:
            if st.button("Next QR Code", key="next_code", use_container_width=True):
                deck.next()
                st.rerun()
        if st.button("Reset", key="reset_codes", use_container_width=True):
            self.reset_codes()
            st.rerun()

    def load_file(self, name: str, data: bytes) -> None:
        """Encode a newly selected file into a fresh :class:`CodeDeck`."""
        digest = hashlib.sha256(name.encode("utf-8") + b"\0" + data).hexdigest()
        if digest == st.session_state.encoded_digest:
            return
        st.session_state.encoded_digest = digest
        st.session_state.encode_error = ""
        try:
            units = self.encoder.encode(data, name)
        except TransferError as e:
            st.session_state.code_deck = None
            st.session_state.encode_error = str(e)
            return
        st.session_state.code_deck = CodeDeck(units, renderer=self.renderer)
        st.session_state.deck_file_name = name
        log.info("Prepared %d codes for %s", len(units), name)

    def reset_codes(self) -> None:
        st.session_state.code_deck = None
        st.session_state.deck_file_name = ""
        st.session_state.encode_error = ""
        st.session_state.encoded_digest = None
        st.session_state.send_uploader_key += 1
