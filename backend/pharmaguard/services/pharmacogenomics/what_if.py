"""
What-If Prescribing Simulator - rule-based dose simulation.

Operates on a deep copy of a RiskResult; the input is never mutated. Every
output is tagged as simulated and must not be presented as a prescription.
"""

from pharmaguard.schemas.pharma_schema import RiskResult, SimulationInfo

from .confidence import round_half_up

DISCLAIMER = "Simulated Recommendation: Not a Final Prescription"

# Dose bands (upper bounds, inclusive)
VERY_LOW_DOSE_MAX = 30
LOW_DOSE_MAX = 60


def simulate_dose_change(result: RiskResult, dose_percent: int) -> RiskResult:
    """
    Preview the effect of giving ``dose_percent`` of the standard dose.

    100 leaves the assessment unchanged, 0 means the drug is not taken.
    Values outside 0..100 are clamped.
    """
    pct = max(0, min(100, int(dose_percent)))
    simulated = result.model_copy(deep=True)
    risk = simulated.risk_assessment
    label = result.risk_assessment.risk_label

    if pct == 0:
        risk.risk_label = "Ineffective"
        risk.severity = "high"
        risk.confidence_score = 0.95
    elif pct <= VERY_LOW_DOSE_MAX:
        if label == "Toxic":
            risk.risk_label, risk.severity = "Adjust Dosage", "moderate"
        elif label == "Adjust Dosage":
            risk.risk_label, risk.severity = "Safe", "low"
        elif label == "Safe":
            # sub-therapeutic
            risk.risk_label, risk.severity = "Ineffective", "moderate"
        risk.confidence_score = max(0.25, round_half_up(risk.confidence_score - 0.10))
    elif pct <= LOW_DOSE_MAX:
        if label == "Toxic":
            risk.risk_label, risk.severity = "Adjust Dosage", "moderate"
        elif label == "Adjust Dosage":
            risk.severity = "low"
        risk.confidence_score = max(0.30, round_half_up(risk.confidence_score - 0.05))
    elif pct < 100:
        if label == "Toxic":
            risk.severity = "moderate"

    simulated.simulated = True
    simulated.simulation = SimulationInfo(
        type="dose_change",
        dose_percent=pct,
        original_label=label,
        original_confidence=result.risk_assessment.confidence_score,
        disclaimer=DISCLAIMER,
    )
    return simulated
