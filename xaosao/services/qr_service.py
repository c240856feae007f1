"""QR code rendering for profile sharing and booking completion links"""

import base64
from io import BytesIO

import qrcode

from ..config import FRONTEND_URL


def render_qr_data_uri(content: str) -> str:
    """Render content as a PNG QR code and return it as a data URI"""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(content)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"


def profile_share_url(customer_id: str) -> str:
    return f"{FRONTEND_URL}/profile/{customer_id}"


def booking_confirmation_url(token: str) -> str:
    return f"{FRONTEND_URL}/customer/confirm-booking/{token}"
