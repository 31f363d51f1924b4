# authenledger/services/pdf_service.py

import functools
import io
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import pypdfium2 as pdfium
import reportlab
from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError
from reportlab.pdfgen import canvas

from authenledger.services.metadata_service import normalize_result
from authenledger.services.qr_service import decode_data_uri
from authenledger.services.status_service import classify_status

logger = logging.getLogger(__name__)

TEXT_DARK = HexColor("#1e293b")
TEXT_MUTED = HexColor("#64748b")
QR_BORDER = HexColor("#c8c8c8")

QR_SIZE = 50 * mm
QR_RIGHT_OFFSET = 20 * mm
QR_BOTTOM_OFFSET = 50 * mm
QR_CAPTION = "Scan to verify authenticity"

SECURITY_FEATURES = [
    "• Cryptographic QR Code with verification hash",
    "• Digital watermark with institution branding",
    "• Tamper-proof design with embedded metadata",
    "• Timestamp-based validation system",
]


REPORTLAB_FONT_DIR = os.path.join(os.path.dirname(reportlab.__file__), "fonts")

# (regular, bold) TrueType pairs, best Unicode coverage first. The Vera pair
# ships with reportlab and covers Latin-1 only.
FONT_CANDIDATES = [
    ("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/dejavu/DejaVuSans.ttf", "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/TTF/DejaVuSans.ttf", "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf", "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf"),
    ("/Library/Fonts/Arial Unicode.ttf", "/Library/Fonts/Arial Unicode.ttf"),
    ("C:\\Windows\\Fonts\\arial.ttf", "C:\\Windows\\Fonts\\arialbd.ttf"),
    (os.path.join(REPORTLAB_FONT_DIR, "Vera.ttf"), os.path.join(REPORTLAB_FONT_DIR, "VeraBd.ttf")),
]


def _font_candidates():
    custom = os.environ.get("AUTHENLEDGER_PDF_FONT")
    if custom:
        yield custom, os.environ.get("AUTHENLEDGER_PDF_BOLD_FONT") or custom
    yield from FONT_CANDIDATES


@functools.lru_cache(maxsize=None)
def register_fonts() -> Tuple[str, str]:
    """
    Registers the first available TrueType pair so names outside Latin-1
    render. Falls back to the built-in Helvetica pair when none loads.

    Returns:
        (regular_font_name, bold_font_name)
    """
    for regular_path, bold_path in _font_candidates():
        if not os.path.isfile(regular_path):
            continue
        try:
            pdfmetrics.registerFont(TTFont("ReportSans", regular_path))
            bold_name = "ReportSans"
            if bold_path != regular_path and os.path.isfile(bold_path):
                pdfmetrics.registerFont(TTFont("ReportSans-Bold", bold_path))
                bold_name = "ReportSans-Bold"
        except TTFError as e:
            logger.warning(f"Could not load font '{regular_path}': {e}")
            continue
        logger.info(f"Using PDF font {regular_path}")
        return "ReportSans", bold_name
    logger.warning("No TrueType font found; non-Latin names may not render")
    return "Helvetica", "Helvetica-Bold"


def _font() -> str:
    return register_fonts()[0]


def _bold_font() -> str:
    return register_fonts()[1]


@dataclass
class WatermarkOptions:
    """Tiled watermark settings. `spacing` is in millimetres."""
    text: str
    opacity: float = 0.1
    font_size: int = 24
    color: str = "#1e40af"
    angle: float = -30
    spacing: float = 60


def default_watermark(institution: str, year: Optional[int] = None) -> WatermarkOptions:
    year = year or datetime.now().year
    return WatermarkOptions(text=f"VERIFIED • {(institution or '').upper()} • {year}")


def _draw_watermark(c: canvas.Canvas, options: WatermarkOptions):
    width, height = A4
    spacing = options.spacing * mm
    c.saveState()
    c.setFillAlpha(options.opacity)
    c.setFillColor(HexColor(options.color))
    c.setFont(_font(), options.font_size)
    y = 20 * mm
    while y < height - 20 * mm:
        x = 20 * mm
        while x < width - 20 * mm:
            c.saveState()
            # reportlab's y axis points up, so walk the rows from the top.
            c.translate(x, height - y)
            c.rotate(options.angle)
            c.drawString(0, 0, options.text)
            c.restoreState()
            x += spacing * 1.5
        y += spacing
    c.restoreState()


def _draw_header(c: canvas.Canvas, result: Dict[str, Any]):
    width, height = A4
    c.setFillColor(TEXT_DARK)
    c.setFont(_bold_font(), 22)
    c.drawCentredString(width / 2, height - 30 * mm, "CERTIFICATE VALIDATION REPORT")
    c.setFont(_font(), 16)
    institution = result["metadata"]["institution"] or "Unknown Institution"
    c.drawCentredString(width / 2, height - 45 * mm, institution)


def _draw_status_badge(c: canvas.Canvas, result: Dict[str, Any]):
    width, height = A4
    badge = classify_status(result["authenticity"], result["confidenceScore"])
    c.setFillColor(HexColor(badge.color))
    c.roundRect(width / 2 - 30 * mm, height - 70 * mm, 60 * mm, 15 * mm, 3 * mm, stroke=0, fill=1)
    c.setFillColor(white)
    c.setFont(_bold_font(), 12)
    c.drawCentredString(width / 2, height - 65 * mm, badge.label)


def _validation_date(result: Dict[str, Any]) -> str:
    value = result.get("validatedAt") or result.get("validationDate")
    if value:
        return str(value)[:10]
    return datetime.now().strftime("%Y-%m-%d")


def _draw_details(c: canvas.Canvas, result: Dict[str, Any]):
    """Draws the label/value table followed by the security features list."""
    _, height = A4
    metadata = result["metadata"]
    details = [
        ("Student Name:", metadata["studentName"] or "Unknown"),
        ("Degree:", metadata["degree"] or "Unknown"),
        ("Institution:", metadata["institution"] or "Unknown"),
        ("Graduation Date:", metadata["graduationDate"] or "Unknown"),
        ("Certificate ID:", metadata["certificateId"] or "Unknown"),
        ("Validation Date:", _validation_date(result)),
        ("Confidence Score:", f"{result['confidenceScore']}%"),
    ]

    c.setFillColor(TEXT_DARK)
    y = 95
    for label, value in details:
        c.setFont(_bold_font(), 12)
        c.drawString(20 * mm, height - y * mm, label)
        c.setFont(_font(), 12)
        c.drawString(70 * mm, height - y * mm, str(value))
        y += 12

    c.setFont(_bold_font(), 14)
    c.drawString(20 * mm, height - (y + 15) * mm, "Security Features:")
    c.setFont(_font(), 10)
    y += 30
    for feature in SECURITY_FEATURES:
        c.drawString(25 * mm, height - y * mm, feature)
        y += 8


def _draw_qr_block(c: canvas.Canvas, qr_data_uri: str):
    width, _ = A4
    qr_x = width - QR_SIZE - QR_RIGHT_OFFSET
    qr_y = QR_BOTTOM_OFFSET

    # White backing with a light border, extended below the image for the caption.
    c.setFillColor(white)
    c.setStrokeColor(QR_BORDER)
    c.setLineWidth(0.5 * mm)
    c.roundRect(qr_x - 5 * mm, qr_y - 10 * mm, QR_SIZE + 10 * mm, QR_SIZE + 15 * mm, 2 * mm, stroke=1, fill=1)

    image = ImageReader(io.BytesIO(decode_data_uri(qr_data_uri)))
    c.drawImage(image, qr_x, qr_y, QR_SIZE, QR_SIZE)

    c.setFillColor(TEXT_DARK)
    c.setFont(_font(), 8)
    c.drawCentredString(qr_x + QR_SIZE / 2, qr_y - 8 * mm, QR_CAPTION)


def _draw_footer(c: canvas.Canvas, rendered_at: datetime):
    width, _ = A4
    c.setFillColor(TEXT_MUTED)
    c.setFont(_font(), 8)
    c.drawCentredString(width / 2, 10 * mm, f"Generated on {rendered_at.strftime('%Y-%m-%d %H:%M:%S')}")
    c.drawCentredString(width / 2, 5 * mm, "This document contains cryptographic security features")


def render_certificate_pdf(
    result: Dict[str, Any],
    qr_data_uri: str,
    watermark: WatermarkOptions,
    rendered_at: Optional[datetime] = None,
) -> bytes:
    """
    Renders a one-page A4 validation report.

    The watermark is drawn first so the rest of the page sits above it. The
    QR block is only drawn when `qr_data_uri` is non-empty. Errors raised by
    reportlab or Pillow propagate to the caller.
    """
    result = normalize_result(result)
    rendered_at = rendered_at or datetime.now()

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Verified certificate {result['metadata']['certificateId']}")

    _draw_watermark(c, watermark)
    _draw_header(c, result)
    _draw_status_badge(c, result)
    _draw_details(c, result)
    if qr_data_uri:
        _draw_qr_block(c, qr_data_uri)
    _draw_footer(c, rendered_at)

    c.showPage()
    c.save()
    return buffer.getvalue()


def count_pages(data: bytes) -> Optional[int]:
    """
    Returns the page count of a PDF held in memory, or None if it can't be opened.
    """
    pdf = None
    try:
        pdf = pdfium.PdfDocument(data)
        return len(pdf)
    except pdfium.PdfiumError as e:
        logger.warning(f"Could not open PDF for page counting: {e}")
        return None
    finally:
        if pdf:
            pdf.close()


def extract_text(data: bytes) -> str:
    """Concatenates the text of every page of an in-memory PDF."""
    pdf = pdfium.PdfDocument(data)
    try:
        parts = []
        for index in range(len(pdf)):
            page = pdf[index]
            textpage = page.get_textpage()
            parts.append(textpage.get_text_range())
            textpage.close()
            page.close()
        return "\n".join(parts)
    finally:
        pdf.close()
