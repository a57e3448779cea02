"""
Download watermarks.

Every evidence download is stamped with who downloaded it, for which
case, and when.  PDFs get a diagonal stamp on every page; raster images
get a text band along the bottom edge.  Other formats are returned
unchanged.
"""

from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.errors import PdfReadError
from reportlab.lib.colors import Color
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

MAX_WATERMARK_LENGTH = 120

PDF_TYPES = {"application/pdf"}
IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}

_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/gif": "GIF",
}


def watermark_text(identity: str, case_number: str | None, when: datetime) -> str:
    """``"0x12ab34cd... | Case: CASE-2024-0001 | 2024-05-01T10:00:00+00:00"``"""
    return f"{identity[:8]}... | Case: {case_number or 'N/A'} | {when.isoformat()}"


def normalize_watermark_text(raw: str | None) -> str:
    if raw is None:
        return ""
    cleaned = " ".join(raw.strip().split())
    return cleaned[:MAX_WATERMARK_LENGTH]


def _make_watermark_page(text: str, width: float, height: float) -> BytesIO:
    buffer = BytesIO()
    can = canvas.Canvas(buffer, pagesize=(width, height))
    can.saveState()
    font_size = max(min(width, height) * 0.03, 10)
    can.setFillColor(Color(0.6, 0.6, 0.6, alpha=0.3))
    can.setFont("Helvetica-Bold", font_size)
    can.translate(width / 2, height / 2)
    can.rotate(45)
    can.drawCentredString(0, 0, text)
    can.restoreState()
    can.save()
    buffer.seek(0)
    return buffer


def watermark_pdf(original: bytes, text: str) -> bytes:
    reader = PdfReader(BytesIO(original))
    writer = PdfWriter()
    for page in reader.pages:
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        stamp = PdfReader(_make_watermark_page(text, width, height)).pages[0]
        page.merge_page(stamp)
        writer.add_page(page)
    out = BytesIO()
    writer.write(out)
    return out.getvalue()


def watermark_image(original: bytes, text: str, mime_type: str) -> bytes:
    image = Image.open(BytesIO(original))
    fmt = _PIL_FORMATS.get(mime_type, image.format or "PNG")
    base = image.convert("RGBA")

    overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    text_height = bottom - top
    band_top = max(base.height - text_height - 12, 0)
    draw.rectangle([(0, band_top), (base.width, base.height)], fill=(0, 0, 0, 110))
    draw.text((6, band_top + 6), text, font=font, fill=(255, 255, 255, 220))

    stamped = Image.alpha_composite(base, overlay)
    if fmt in ("JPEG", "GIF"):
        stamped = stamped.convert("RGB")

    out = BytesIO()
    stamped.save(out, format=fmt)
    return out.getvalue()


def apply_watermark(content: bytes, mime_type: str, text: str) -> tuple[bytes, bool]:
    """
    Watermark ``content`` according to its MIME type.

    Returns ``(bytes, applied)``; when the type is not supported or the
    file cannot be parsed the original bytes are returned with
    ``applied=False``.
    """
    text = normalize_watermark_text(text)
    if not text:
        return content, False
    try:
        if mime_type in PDF_TYPES:
            return watermark_pdf(content, text), True
        if mime_type in IMAGE_TYPES:
            return watermark_image(content, text, mime_type), True
    except (PdfReadError, UnidentifiedImageError, OSError, ValueError) as exc:
        logger.warning("Could not watermark %s file: %s", mime_type, exc)
    return content, False
