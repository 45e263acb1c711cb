"""Risk scoring heuristics

Two independent rules live here:

* the compliance-derived risk score, an additive score over the governance
  flags of a compliance record, bucketed into four levels;
* the risk-register classifier, which maps probability x impact of an ad-hoc
  risk entry to one of three tiers.

Both are pure functions and cheap enough to be recomputed on every form change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .constants import MIN_SCORE, MAX_SCORE
from .models import BoardStatus, InstitutionStatus


class RiskLevel(Enum):
    """Risk severity levels"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def label_ar(self) -> str:
        return _LABELS_AR[self]

    @property
    def color(self) -> str:
        return _COLORS[self]


_LABELS_AR = {
    RiskLevel.LOW: "منخفض",
    RiskLevel.MEDIUM: "متوسط",
    RiskLevel.HIGH: "مرتفع",
    RiskLevel.CRITICAL: "حرج",
}

_COLORS = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "orange",
    RiskLevel.HIGH: "red",
    RiskLevel.CRITICAL: "red",
}

# (threshold, level), highest first
COMPLIANCE_THRESHOLDS = [
    (9, RiskLevel.CRITICAL),
    (6, RiskLevel.HIGH),
    (3, RiskLevel.MEDIUM),
]

REGISTER_THRESHOLDS = [
    (15, RiskLevel.HIGH),
    (8, RiskLevel.MEDIUM),
]

MAX_COMPLIANCE_SCORE = 13

_UNFAVORABLE_BOARD = {BoardStatus.EXPIRED.value, BoardStatus.ABSENT.value}


@dataclass(frozen=True)
class RiskScore:
    score: int
    level: RiskLevel

    @property
    def label(self) -> str:
        return self.level.value

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "level": self.level.value,
            "label": self.level.label_ar,
            "color": self.level.color,
        }


@dataclass(frozen=True)
class RiskAssessment:
    probability: int
    impact: int
    severity: int
    level: RiskLevel

    @property
    def color(self) -> str:
        return self.level.color

    def to_dict(self) -> dict:
        return {
            "probability": self.probability,
            "impact": self.impact,
            "severity": self.severity,
            "level": self.level.value,
            "color": self.color,
        }


def _field(record, name):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _value(value):
    return value.value if isinstance(value, Enum) else value


def calculate_risk_score(record) -> RiskScore:
    """Score a compliance record (or partial form state) from its governance flags.

    Accepts a ComplianceRecord, a ComplianceDraft or a plain mapping. Missing
    flags count as unfavorable.
    """
    score = 0
    if _value(_field(record, "board_status")) in _UNFAVORABLE_BOARD:
        score += 3
    if not _field(record, "has_executive_management"):
        score += 2
    if not _field(record, "has_auditor_company"):
        score += 2
    if not _field(record, "has_financial_report_prev_year"):
        score += 2
    if not _field(record, "has_minutes_prev_year"):
        score += 1
    if _value(_field(record, "institution_status")) != InstitutionStatus.ACTIVE.value:
        score += 3

    return RiskScore(score=score, level=compliance_level(score))


def compliance_level(score: int) -> RiskLevel:
    for threshold, level in COMPLIANCE_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.LOW


def classify_risk(probability: int, impact: int) -> RiskAssessment:
    """Classify a risk-register entry by probability x impact"""
    for name, value in (("probability", probability), ("impact", impact)):
        if not MIN_SCORE <= value <= MAX_SCORE:
            raise ValueError(f"{name} must be between {MIN_SCORE} and {MAX_SCORE}, got {value}")

    severity = probability * impact
    level = RiskLevel.LOW
    for threshold, tier in REGISTER_THRESHOLDS:
        if severity >= threshold:
            level = tier
            break
    return RiskAssessment(probability=probability, impact=impact, severity=severity, level=level)


def assess_risk(risk) -> Optional[RiskAssessment]:
    """Classification of a stored register entry, None when its values are out of range"""
    try:
        return classify_risk(risk.probability, risk.impact)
    except ValueError:
        return None


def partition_risks(risks: Iterable) -> dict:
    """Count risks per register tier, skipping entries that cannot be classified"""
    counts = {"high": 0, "medium": 0, "low": 0, "total": 0}
    for risk in risks:
        assessment = assess_risk(risk)
        if assessment is None:
            continue
        counts[assessment.level.value.lower()] += 1
        counts["total"] += 1
    return counts
