# src/timed_dispatch/qr.py

from __future__ import annotations

import io
import sys
from typing import TextIO

import qrcode
import qrcode.image.svg
from qrcode.constants import ERROR_CORRECT_M


def render_svg(code: str) -> bytes:
    """Render a pairing code as a standalone SVG document."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, image_factory=qrcode.image.svg.SvgPathImage)
    qr.add_data(code)
    qr.make(fit=True)
    img = qr.make_image()

    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()


def print_terminal(code: str, out: TextIO | None = None) -> None:
    """Draw a pairing code with block characters so it can be scanned from a terminal."""
    qr = qrcode.QRCode(border=1, error_correction=ERROR_CORRECT_M)
    qr.add_data(code)
    qr.make(fit=True)
    qr.print_ascii(out=out or sys.stdout, invert=True)
