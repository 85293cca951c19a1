from __future__ import annotations

import io

import qrcode


def registration_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/register/{token}"


def render_qr_png(data: str, *, box_size: int = 10, border: int = 2) -> bytes:
    """PNG image of a QR code encoding ``data`` (shown on the kiosk screen)."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
