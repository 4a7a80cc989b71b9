"""Pairing-code rendering."""

from __future__ import annotations

import base64
from io import BytesIO

import qrcode


def render_data_uri(code: str) -> str:
    """Encode a raw pairing string as a PNG QR code data URI."""
    qr = qrcode.QRCode(version=1, box_size=10, border=2)
    qr.add_data(code)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    img_base64 = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{img_base64}"
