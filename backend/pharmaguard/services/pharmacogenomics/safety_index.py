"""
Genomic Drug Safety Index - patient-level score (0-100) from per-drug results.

Starts at 100 and deducts, per drug:
  - Toxic / Ineffective label        -25
  - Adjust Dosage label              -10
  - critical severity                -8 (in addition to the label penalty)
  - high severity                    -5
  - confidence below threshold       -4
  - no detected variants             -3

Only the aggregate is clamped to [0, 100]; penalties are not normalised by
the number of drugs.
"""

import logging
from typing import Optional, Sequence

from pharmaguard.schemas.pharma_schema import RiskResult, SafetyBreakdownItem, SafetyIndexResult

from .config import SafetyIndexPenalties, get_safety_penalties

logger = logging.getLogger(__name__)

LEVEL_COLORS = {
    "Good": "#10b981",
    "Moderate": "#f59e0b",
    "At Risk": "#ef4444",
    "unknown": "#94a3b8",
}


def safety_level(score: int) -> str:
    if score >= 80:
        return "Good"
    if score >= 50:
        return "Moderate"
    return "At Risk"


def score_result(result: RiskResult, penalties: SafetyIndexPenalties) -> SafetyBreakdownItem:
    """Penalty and reasons for one drug, reasons in penalty order."""
    risk = result.risk_assessment
    label = risk.risk_label
    variant_count = len(result.pharmacogenomic_profile.detected_variants)

    penalty = 0
    reasons = []

    if label in ("Toxic", "Ineffective"):
        penalty += penalties.toxic_or_ineffective
        reasons.append(f"{label} risk (-{penalties.toxic_or_ineffective})")
    elif label == "Adjust Dosage":
        penalty += penalties.adjust_dosage
        reasons.append(f"Dose adjustment needed (-{penalties.adjust_dosage})")

    if risk.severity == "critical":
        penalty += penalties.critical_severity
        reasons.append(f"Critical severity (-{penalties.critical_severity})")
    elif risk.severity == "high":
        penalty += penalties.high_severity
        reasons.append(f"High severity (-{penalties.high_severity})")

    if risk.confidence_score < penalties.low_confidence_threshold:
        penalty += penalties.low_confidence
        reasons.append(f"Low confidence (-{penalties.low_confidence})")

    if variant_count == 0:
        penalty += penalties.no_variants
        reasons.append(f"No variants detected (-{penalties.no_variants})")

    return SafetyBreakdownItem(drug=result.drug, risk_label=label, penalty=penalty, reasons=reasons)


def compute_safety_index(
    results: Sequence[RiskResult],
    penalties: Optional[SafetyIndexPenalties] = None,
) -> SafetyIndexResult:
    if not results:
        return SafetyIndexResult(score=0, level="unknown", color=LEVEL_COLORS["unknown"], breakdown=[])

    penalties = penalties or get_safety_penalties()
    breakdown = [score_result(r, penalties) for r in results]

    score = 100 - sum(item.penalty for item in breakdown)
    score = max(0, min(100, score))
    level = safety_level(score)

    logger.info("Safety index %d (%s) over %d drug(s)", score, level, len(results))

    return SafetyIndexResult(score=score, level=level, color=LEVEL_COLORS[level], breakdown=breakdown)
