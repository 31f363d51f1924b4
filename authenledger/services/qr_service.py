# services/qr_service.py
"""
Builds, renders and checks the QR payloads embedded in verification certificates.

Features:
- Assembles the QR payload (verification metadata + hash + verify URL).
- Renders a payload as a PNG data URI suitable for embedding in a PDF.
- Structurally validates a scanned or pasted payload.

The embedded hash is computed over data that travels with it, so the check
below confirms shape and recency only. It is not tamper evidence.
"""
import base64
import io
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, NamedTuple, Optional

import qrcode
from dateutil import parser
from PIL import Image
from qrcode.image.pil import PilImage

from authenledger.services import hash_service
from authenledger.services.metadata_service import iso_timestamp

logger = logging.getLogger(__name__)

QR_VERSION = "2.0"
DEFAULT_PLATFORM = "AuthenLedger"
DEFAULT_VERIFY_URL_TEMPLATE = "https://verify.authenledger.com/v/{certificate_id}?h={hash}"

QR_WIDTH = 200
QR_MARGIN = 2
QR_DARK = "#1e40af"
QR_LIGHT = "#ffffff"

MAX_AGE = timedelta(days=5 * 365)

MISSING_CERTIFICATE_ID = "Missing certificate ID"
INVALID_HASH = "Invalid or missing cryptographic hash"
MISSING_TIMESTAMP = "Missing timestamp"
INVALID_TIMESTAMP = "Invalid timestamp - certificate too old or future dated"
INVALID_FORMAT = "Failed to parse QR code data - invalid format"


class QRFormatError(ValueError):
    """Raised when pasted or decoded QR text is not a JSON object."""


class QRCheck(NamedTuple):
    is_valid: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"isValid": self.is_valid}
        if self.error:
            data["error"] = self.error
        return data


def build_verify_url(certificate_id: str, data_hash: str, template: str = DEFAULT_VERIFY_URL_TEMPLATE) -> str:
    return template.format(certificate_id=certificate_id, hash=data_hash)


def build_qr_payload(
    metadata: Dict[str, Any],
    certificate_id: str,
    verify_url_template: str = DEFAULT_VERIFY_URL_TEMPLATE,
    platform: str = DEFAULT_PLATFORM,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Merges verification metadata with its hash, a verify URL and the
    payload version tags. The hash covers `metadata` only.
    """
    data_hash = hash_service.sha256_of_data(metadata)
    payload = dict(metadata)
    payload.update({
        "hash": data_hash,
        "verifyUrl": build_verify_url(certificate_id, data_hash, verify_url_template),
        "qrVersion": QR_VERSION,
        "generated": iso_timestamp(now),
        "platform": platform,
    })
    return payload


def generate_qr_data_uri(text: str) -> str:
    """
    Encodes `text` as a 200px, high error-correction PNG QR code.

    Returns:
        A 'data:image/png;base64,...' string, or '' if the text can't be
        encoded (for example when it exceeds QR capacity).
    """
    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=QR_MARGIN,
        )
        qr.add_data(text)
        qr.make(fit=True)

        img: PilImage = qr.make_image(image_factory=PilImage, fill_color=QR_DARK, back_color=QR_LIGHT)
        pil_image = img.get_image().convert("RGB").resize((QR_WIDTH, QR_WIDTH), Image.NEAREST)

        buffer = io.BytesIO()
        pil_image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
    except Exception as e:
        logger.exception(f"QR code generation failed for a {len(text)}-character payload: {e}")
        return ""


def decode_data_uri(data_uri: str) -> bytes:
    """Returns the raw bytes of a base64 data URI."""
    _, _, encoded = data_uri.partition(",")
    return base64.b64decode(encoded)


def generate_payload_qr(payload: Dict[str, Any]) -> str:
    return generate_qr_data_uri(json.dumps(payload, separators=(',', ':'), ensure_ascii=False))


def parse_qr_text(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise QRFormatError(INVALID_FORMAT) from e
    if not isinstance(payload, dict):
        raise QRFormatError(INVALID_FORMAT)
    return payload


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Accepts an ISO 8601 string or epoch milliseconds. Anything else,
    including free text such as 'Monday', is unparsable.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    if not isinstance(value, str):
        return None
    try:
        parsed = parser.isoparse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def verify_qr_data(payload: Dict[str, Any], now: Optional[datetime] = None) -> QRCheck:
    """
    Checks a parsed QR payload for required fields and a plausible
    timestamp. Stops at the first failure. The hash is not recomputed.
    """
    if not payload.get("certificateId"):
        return QRCheck(False, MISSING_CERTIFICATE_ID)

    data_hash = payload.get("hash")
    if not isinstance(data_hash, str) or len(data_hash) != hash_service.HASH_LENGTH:
        return QRCheck(False, INVALID_HASH)

    if not payload.get("timestamp"):
        return QRCheck(False, MISSING_TIMESTAMP)

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    issued = _parse_timestamp(payload["timestamp"])
    if issued is None or issued < now - MAX_AGE or issued > now:
        return QRCheck(False, INVALID_TIMESTAMP)

    return QRCheck(True)
