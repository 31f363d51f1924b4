# services/metadata_service.py
"""
Normalizes validation results and projects them into verification metadata.

All default substitution for missing fields happens in `normalize_result`;
builders downstream can rely on every field being present.
"""
import copy
from datetime import datetime, timezone
from typing import Any, Dict, Optional

VERIFICATION_VERSION = "1.0"

METADATA_DEFAULTS = {
    "certificateId": "UNKNOWN",
    "studentName": "",
    "degree": "",
    "institution": "",
    "graduationDate": "",
}

RESULT_DEFAULTS = {
    "fileName": "",
    "fileSize": 0,
    "authenticity": "unknown",
    "confidenceScore": 0,
    "issues": [],
    "processingTime": 0,
    "technicalAnalysis": {},
}

# Hash input order. Changing it changes every hash ever issued.
VERIFICATION_FIELDS = (
    "certificateId",
    "studentName",
    "institution",
    "graduationDate",
    "validationDate",
    "confidenceScore",
    "authenticity",
    "timestamp",
    "version",
)


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a 'Z' suffix."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _or_default(value, default):
    # Falsy values (None, '', 0) fall back, mirroring how results arrive from forms.
    return value if value else default


def normalize_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    metadata = metadata or {}
    normalized = {key: _or_default(metadata.get(key), default) for key, default in METADATA_DEFAULTS.items()}
    for key, value in metadata.items():
        normalized.setdefault(key, value)
    return normalized


def normalize_result(result: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Returns a deep copy of `result` with every documented field present."""
    result = copy.deepcopy(result or {})
    normalized = {key: _or_default(result.get(key), copy.deepcopy(default)) for key, default in RESULT_DEFAULTS.items()}
    normalized["metadata"] = normalize_metadata(result.get("metadata"))
    for key, value in result.items():
        normalized.setdefault(key, value)
    return normalized


def build_verification_metadata(result: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Projects a validation result into the fixed verification metadata shape.
    Never fails: missing fields are filled from the defaults above.
    """
    normalized = normalize_result(result)
    metadata = normalized["metadata"]
    timestamp = iso_timestamp(now)
    values = {
        "certificateId": metadata["certificateId"],
        "studentName": metadata["studentName"],
        "institution": metadata["institution"],
        "graduationDate": metadata["graduationDate"],
        "validationDate": normalized.get("validationDate") or normalized.get("validatedAt") or timestamp,
        "confidenceScore": normalized["confidenceScore"],
        "authenticity": normalized["authenticity"],
        "timestamp": timestamp,
        "version": VERIFICATION_VERSION,
    }
    return {field: values[field] for field in VERIFICATION_FIELDS}
