"""
app.py
======

Streamlit entry point for the QR file bridge::

    streamlit run app.py

Settings are read from the environment or a ``.env`` file; see
:mod:`utils`.

"""

from __future__ import annotations

import streamlit as st

from storage_manager import StorageManager
from ui_manager import UIManager
from utils import (
    configure_logging,
    get_box_size,
    get_error_correction,
    get_max_payload_size,
    get_output_dir,
    load_env,
)


def main() -> None:
    load_env()
    configure_logging()
    st.set_page_config(page_title="QR File Bridge", page_icon=":material/qr_code:")
    ui = UIManager(
        StorageManager(get_output_dir()),
        max_payload_size=get_max_payload_size(),
        error_correction=get_error_correction(),
        box_size=get_box_size(),
    )
    ui.render()


main()
