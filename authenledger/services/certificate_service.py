# services/certificate_service.py
"""
Turns a stored validation result into downloadable verification artifacts:
the QR payload and image, the watermarked PDF report, and the JSON
verification file.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from authenledger.services import hash_service, pdf_service, qr_service
from authenledger.services.metadata_service import (
    VERIFICATION_VERSION,
    build_verification_metadata,
    iso_timestamp,
    normalize_result,
)

logger = logging.getLogger(__name__)


class CertificateGenerationError(Exception):
    """Raised when the PDF report can't be produced."""


def build_certificate_qr(
    result: Dict[str, Any],
    verify_url_template: str = qr_service.DEFAULT_VERIFY_URL_TEMPLATE,
    platform: str = qr_service.DEFAULT_PLATFORM,
) -> Tuple[Dict[str, Any], str]:
    """
    Returns the QR payload for `result` and its rendered data URI. The data
    URI is '' when the payload couldn't be encoded.
    """
    metadata = build_verification_metadata(result)
    payload = qr_service.build_qr_payload(
        metadata,
        metadata["certificateId"],
        verify_url_template=verify_url_template,
        platform=platform,
    )
    return payload, qr_service.generate_payload_qr(payload)


def generate_secure_certificate(
    result: Dict[str, Any],
    verify_url_template: str = qr_service.DEFAULT_VERIFY_URL_TEMPLATE,
    platform: str = qr_service.DEFAULT_PLATFORM,
    watermark: Optional[pdf_service.WatermarkOptions] = None,
) -> Tuple[bytes, str]:
    """
    Runs QR generation, watermark setup and PDF rendering in order.

    Returns:
        (pdf_bytes, qr_data_uri). A missing QR only drops the QR block from
        the PDF; any rendering failure raises CertificateGenerationError.
    """
    result = normalize_result(result)
    certificate_id = result["metadata"]["certificateId"]
    _, qr_data_uri = build_certificate_qr(result, verify_url_template, platform)
    if not qr_data_uri:
        logger.warning(f"No QR code available for certificate '{certificate_id}'; omitting QR block")

    watermark = watermark or pdf_service.default_watermark(result["metadata"]["institution"])
    try:
        pdf_bytes = pdf_service.render_certificate_pdf(result, qr_data_uri, watermark)
    except Exception as e:
        logger.exception(f"Certificate generation failed for '{certificate_id}': {e}")
        raise CertificateGenerationError(f"Could not generate certificate '{certificate_id}'") from e

    logger.info(f"Generated secure certificate for '{certificate_id}' ({len(pdf_bytes)} bytes)")
    return pdf_bytes, qr_data_uri


def build_verification_file(result: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Builds the downloadable JSON verification record. The hash covers the
    full result as given, before any defaults are applied.
    """
    normalized = normalize_result(result)
    return {
        "certificateId": normalized["metadata"]["certificateId"],
        "validationTimestamp": normalized.get("validationDate") or normalized.get("validatedAt"),
        "authenticity": normalized["authenticity"],
        "confidenceScore": normalized["confidenceScore"],
        "metadata": normalized["metadata"],
        "issues": normalized["issues"],
        "cryptographicHash": hash_service.sha256_of_data(result),
        "generatedAt": iso_timestamp(now),
        "version": VERIFICATION_VERSION,
    }


def certificate_filename(result: Dict[str, Any], kind: str = "pdf") -> str:
    certificate_id = normalize_result(result)["metadata"]["certificateId"]
    if kind == "json":
        return f"verification-{certificate_id}.json"
    return f"verified-certificate-{certificate_id}.pdf"
