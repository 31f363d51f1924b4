# authenledger/services/scoring_service.py
"""
Document scoring.

There is no analysis engine here. `RandomScorer` is a simulation that
produces plausible-looking scores so the rest of the pipeline can be
exercised; swap in another `Scorer` to plug in a real engine.
"""
import abc
import random
import string
from typing import Any, Dict, List, Optional

from faker import Faker

from authenledger.services.status_service import AUTHENTIC_THRESHOLD

# Probability that a simulated document picks up at least one issue.
ISSUE_PROBABILITY = 0.3

POSSIBLE_ISSUES = [
    'Signature inconsistency detected',
    'Date format anomaly',
    'Unusual font variation',
    'Layout inconsistency',
    'Seal verification pending',
]

DEGREES = [
    'Bachelor of Science', 'Bachelor of Arts', 'Bachelor of Technology',
    'Master of Science', 'Master of Business Administration', 'Doctor of Philosophy',
]


class Scorer(abc.ABC):
    """Produces a validation verdict for an uploaded file record."""

    @abc.abstractmethod
    def score(self, file_record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Returns a dict with authenticity, confidenceScore, issues,
        processingTime, metadata and technicalAnalysis.
        """


class RandomScorer(Scorer):
    """Simulated scorer: every value is drawn from a random generator."""

    def __init__(self, seed: Optional[int] = None, institution: Optional[str] = None):
        self._random = random.Random(seed)
        self._faker = Faker()
        if seed is not None:
            self._faker.seed_instance(seed)
        self._institution = institution

    def _pick_issues(self) -> List[str]:
        issues = []
        if self._random.random() < ISSUE_PROBABILITY:
            for _ in range(self._random.randint(1, 3)):
                issue = self._random.choice(POSSIBLE_ISSUES)
                if issue not in issues:
                    issues.append(issue)
        return issues

    def _certificate_id(self) -> str:
        suffix = ''.join(self._random.choices(string.ascii_uppercase + string.digits, k=9))
        return f"CERT-{suffix}"

    def score(self, file_record: Dict[str, Any]) -> Dict[str, Any]:
        base_score = self._random.randint(70, 99)
        graduation = self._faker.date_between(start_date='-4y', end_date='-30d')
        issued = self._faker.date_between(start_date=graduation, end_date='today')
        return {
            'authenticity': 'authentic' if base_score >= AUTHENTIC_THRESHOLD else 'suspicious',
            'confidenceScore': base_score,
            'issues': self._pick_issues(),
            'processingTime': self._random.randint(1000, 3999),
            'metadata': {
                'institution': self._institution or f"{self._faker.city()} University",
                'studentName': self._faker.name(),
                'degree': self._random.choice(DEGREES),
                'graduationDate': graduation.isoformat(),
                'certificateId': self._certificate_id(),
                'issueDate': issued.isoformat(),
            },
            'technicalAnalysis': {
                'ocrAccuracy': self._random.randint(90, 99),
                'layoutAnalysis': self._random.randint(85, 99),
                'signatureVerification': self._random.randint(80, 99),
                'institutionMatch': self._random.randint(88, 99),
                'blockchainVerification': 'verified' if self._random.random() > 0.5 else 'pending',
                'aiDetection': 'flagged' if self._random.random() > 0.9 else 'clean',
            },
        }
