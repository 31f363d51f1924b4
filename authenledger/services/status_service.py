# services/status_service.py
"""
The three-way status ladder shared by the PDF badge, the API and the CLI.
"""
from typing import NamedTuple

AUTHENTIC_THRESHOLD = 85
REVIEW_THRESHOLD = 70


class StatusBadge(NamedTuple):
    label: str
    short_label: str
    color: str


VERIFIED = StatusBadge("VERIFIED AUTHENTIC", "Authentic", "#22c55e")
REVIEW = StatusBadge("REQUIRES REVIEW", "Suspicious", "#f59e0b")
FORGED = StatusBadge("POTENTIALLY FORGED", "Potentially Forged", "#ef4444")


def classify_status(authenticity: str, score) -> StatusBadge:
    score = score or 0
    if authenticity == "authentic" and score >= AUTHENTIC_THRESHOLD:
        return VERIFIED
    if score >= REVIEW_THRESHOLD:
        return REVIEW
    return FORGED
