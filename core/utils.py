import base64
import logging
from datetime import date, datetime, time, timezone as dt_timezone
from io import BytesIO

import qrcode

logger = logging.getLogger(__name__)


def parse_iso_date(value):
    """
    Coerce ``value`` into a ``date``.

    Accepts ``date`` objects (datetimes are truncated to their UTC day) and
    ``YYYY-MM-DD`` strings. Raises ``ValueError`` for anything else.
    """
    if isinstance(value, datetime):
        return utc_date(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Cannot interpret {value!r} as a date")


def utc_date(timestamp):
    """Calendar day of ``timestamp`` in UTC. Naive datetimes are taken as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.date()
    return timestamp.astimezone(dt_timezone.utc).date()


def utc_noon(day):
    """Aware datetime at 12:00 UTC on ``day``, used for backdated records."""
    return datetime.combine(day, time(12, 0), tzinfo=dt_timezone.utc)


def generate_qr_code_base64(data, box_size=10, border=2):
    """
    Generate a QR code and return it as a base64 data URI.

    Args:
        data: The text to encode (a student's name for attendance badges)
        box_size: Size of each box in pixels (default 10)
        border: Border size in boxes (default 2)

    Returns:
        str: Base64 data URI string for embedding in an <img>, or None if failed
    """
    try:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=box_size,
            border=border,
        )
        qr.add_data(data)
        qr.make(fit=True)

        # Create image using default PIL/Pillow backend
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        img.save(buffer, format='PNG')
        buffer.seek(0)

        img_base64 = base64.b64encode(buffer.getvalue()).decode()
        return f"data:image/png;base64,{img_base64}"

    except (OSError, ValueError) as e:
        logger.error(f"Failed to generate QR code: {e}")
        return None
