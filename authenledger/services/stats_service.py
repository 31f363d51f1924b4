# services/stats_service.py
"""
Aggregates and filters validation records for dashboards and history views.
"""
from typing import Any, Dict, Iterable, List, Optional


def compute_stats(validations: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    validations = list(validations)
    total = len(validations)
    authentic = sum(1 for v in validations if v.get("authenticity") == "authentic")
    flagged = sum(1 for v in validations if v.get("issues"))
    processing = sum(v.get("processingTime") or 0 for v in validations)
    return {
        "totalValidations": total,
        "authenticRate": (authentic / total) * 100 if total else 0.0,
        "flaggedDocuments": flagged,
        "avgProcessingTime": processing / total if total else 0.0,
    }


def filter_validations(
    validations: Iterable[Dict[str, Any]],
    search: Optional[str] = None,
    status: str = "all",
) -> List[Dict[str, Any]]:
    """
    Case-insensitive search over file name, student name and institution,
    combined with an exact authenticity filter ('all' disables it).
    """
    filtered = list(validations)
    if search:
        term = search.lower()

        def matches(v):
            metadata = v.get("metadata") or {}
            fields = (v.get("fileName"), metadata.get("studentName"), metadata.get("institution"))
            return any(term in (field or "").lower() for field in fields)

        filtered = [v for v in filtered if matches(v)]
    if status and status != "all":
        filtered = [v for v in filtered if v.get("authenticity") == status]
    return filtered


def newest_first(validations: Iterable[Dict[str, Any]], limit: Optional[int] = None) -> List[Dict[str, Any]]:
    ordered = sorted(validations, key=lambda v: v.get("validatedAt") or "", reverse=True)
    return ordered[:limit] if limit is not None else ordered
