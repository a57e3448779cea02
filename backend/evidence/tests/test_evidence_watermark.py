"""
Unit tests — download watermarking.

Covers ``evidence.watermark``: text formatting, PDF stamping through
reportlab/PyPDF2, image stamping through Pillow and the pass-through of
unsupported or unreadable content.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone

from django.test import SimpleTestCase
from PIL import Image
from PyPDF2 import PdfReader
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from evidence.watermark import (
    MAX_WATERMARK_LENGTH,
    apply_watermark,
    normalize_watermark_text,
    watermark_text,
)


def _pdf_bytes(pages: int = 2) -> bytes:
    buffer = io.BytesIO()
    doc = canvas.Canvas(buffer, pagesize=A4)
    for n in range(pages):
        doc.drawString(72, 720, f"Page {n + 1}")
        doc.showPage()
    doc.save()
    return buffer.getvalue()


def _jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (200, 100), color=(250, 250, 250)).save(buffer, format="JPEG")
    return buffer.getvalue()


class TestWatermarkText(SimpleTestCase):

    def test_text_shortens_identity_and_names_case(self):
        when = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

        text = watermark_text("0x12ab34cd56ef", "CASE-2024-0001", when)

        self.assertEqual(text, "0x12ab34... | Case: CASE-2024-0001 | 2024-05-01T10:00:00+00:00")

    def test_text_without_case(self):
        text = watermark_text("user@example.com", None, datetime(2024, 1, 1, tzinfo=timezone.utc))

        self.assertIn("Case: N/A", text)

    def test_normalize_collapses_whitespace_and_truncates(self):
        self.assertEqual(normalize_watermark_text("  a \n b\t c "), "a b c")
        self.assertEqual(len(normalize_watermark_text("x" * 500)), MAX_WATERMARK_LENGTH)
        self.assertEqual(normalize_watermark_text(None), "")


class TestApplyWatermark(SimpleTestCase):

    def test_pdf_keeps_every_page(self):
        original = _pdf_bytes(pages=3)

        stamped, applied = apply_watermark(original, "application/pdf", "0x12ab34... | Case: N/A")

        self.assertTrue(applied)
        self.assertNotEqual(stamped, original)
        self.assertEqual(len(PdfReader(io.BytesIO(stamped)).pages), 3)

    def test_jpeg_keeps_format_and_size(self):
        stamped, applied = apply_watermark(_jpeg_bytes(), "image/jpeg", "investigator@example.com")

        self.assertTrue(applied)
        image = Image.open(io.BytesIO(stamped))
        self.assertEqual(image.format, "JPEG")
        self.assertEqual(image.size, (200, 100))

    def test_unsupported_type_passes_through(self):
        stamped, applied = apply_watermark(b"audio", "audio/mpeg", "someone")

        self.assertFalse(applied)
        self.assertEqual(stamped, b"audio")

    def test_corrupt_pdf_passes_through(self):
        stamped, applied = apply_watermark(b"%PDF-not-really", "application/pdf", "someone")

        self.assertFalse(applied)
        self.assertEqual(stamped, b"%PDF-not-really")

    def test_blank_text_is_not_applied(self):
        original = _jpeg_bytes()

        stamped, applied = apply_watermark(original, "image/jpeg", "   ")

        self.assertFalse(applied)
        self.assertEqual(stamped, original)
