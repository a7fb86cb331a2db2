"""
Risk Engine - drug risk assessment from parsed variants.

Pipeline per drug:
1. Look up the drug profile and its primary gene
2. Resolve the gene's diplotype and phenotype
3. Look up phenotype risk in the drug's risk table
4. Score confidence from data quality
5. Assemble the full RiskResult

Unsupported drugs and phenotypes without a risk mapping produce ``Unknown``
results instead of errors.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pharmaguard.core.config import get_settings
from pharmaguard.schemas.pharma_schema import (
    ClinicalRecommendation,
    ConfidenceDetails,
    DetectedVariant,
    LLMExplanation,
    PharmacogenomicProfile,
    QualityMetrics,
    RiskAssessment,
    RiskResult,
)

from .confidence import calculate_confidence, fixed_confidence_details
from .config import get_confidence_weights
from .knowledge_base import KnowledgeBase, get_knowledge_base
from .phenotype_mapper import DiplotypeResolver

logger = logging.getLogger(__name__)

EVIDENCE_LEVEL = "CPIC Level A (Strong)"
CPIC_VERSION = "CPIC 2024"

MONITORING_BY_LABEL = {
    "Safe": "Routine clinical monitoring as per standard of care",
    "Adjust Dosage": "Enhanced monitoring recommended: more frequent lab tests during dose titration",
    "Toxic": "Do NOT administer without specialist consultation. If used, intensive monitoring required",
    "Ineffective": "Monitor for therapeutic failure. Consider therapeutic drug monitoring or alternative agent",
    "Unknown": "Clinical judgment required. Consider pharmacogenomic consultation",
}

SIGNIFICANCE_BY_SEVERITY = {
    "critical": "CRITICAL: Immediate clinical action required. Risk of severe adverse events or therapeutic failure.",
    "high": "HIGH: Significant clinical impact. Dose modification or drug substitution strongly recommended.",
    "moderate": "MODERATE: Clinical impact present. Dose adjustment or enhanced monitoring recommended.",
    "low": "LOW: Minor clinical impact. Standard care with awareness of potential effects.",
    "none": "NONE: No significant pharmacogenomic interaction identified. Standard dosing appropriate.",
}

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _system_clock() -> datetime:
    return datetime.now(timezone.utc)


def monitoring_for(risk_label: str) -> str:
    return MONITORING_BY_LABEL.get(risk_label, MONITORING_BY_LABEL["Unknown"])


def clinical_significance_for(severity: str) -> str:
    return SIGNIFICANCE_BY_SEVERITY.get(severity, SIGNIFICANCE_BY_SEVERITY["none"])


def format_detected_variants(gene_variants: Sequence, primary_gene: str) -> List[DetectedVariant]:
    """Display form of the primary gene's variants."""
    formatted = []
    for v in gene_variants:
        ann = v.annotation_for(primary_gene) or (v.pgx_annotations[0] if v.pgx_annotations else None)
        formatted.append(
            DetectedVariant(
                rsid=v.primary_rsid or "unknown",
                chromosome=v.chrom,
                position=v.pos,
                ref_allele=v.ref,
                alt_allele=",".join(v.alt),
                genotype=v.genotype or "unknown",
                quality_score=v.qual,
                gene=ann.gene if ann else primary_gene,
                star_allele=ann.star_allele if ann else None,
                functional_impact=(ann.function if ann and ann.function else "Unknown"),
                annotation_source=ann.source if ann else "Unknown",
            )
        )
    return formatted


class RiskEngine:
    """
    Deterministic risk assessment against the knowledge base.

    ``clock`` returns the current UTC datetime; tests inject a fixed clock so
    that ``timestamp`` and ``patient_id`` are reproducible.
    """

    def __init__(
        self,
        knowledge_base: Optional[KnowledgeBase] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.kb = knowledge_base or get_knowledge_base()
        self.resolver = DiplotypeResolver(self.kb)
        self.clock = clock or _system_clock

    def assess_risk(self, variants: Sequence, drug_name: str) -> RiskResult:
        drug = (drug_name or "").strip().upper()
        now = self.clock()
        profile = self.kb.get_drug(drug)

        if profile is None:
            logger.info("Drug %s not supported; returning Unknown result", drug)
            supported = ", ".join(self.kb.supported_drugs)
            return self._build_result(
                now=now,
                drug=drug,
                risk_label="Unknown",
                confidence=0.0,
                confidence_details=fixed_confidence_details(0.0),
                severity="none",
                phenotype="Unknown",
                diplotype="Unknown",
                primary_gene="Unknown",
                detected_variants=[],
                recommendation=f'Drug "{drug}" is not in the supported drug list. Supported drugs: {supported}',
                dosing_guideline="No guideline available for this drug",
                explanation=f'The drug "{drug}" is not currently supported by PharmaGuard.',
            )

        gene = profile.gene
        gene_variants = [v for v in variants if any(a.gene == gene for a in v.pgx_annotations)]
        call = self.resolver.resolve(gene_variants, gene)
        phenotype_name = self.kb.phenotype_name(call.phenotype)
        detected = format_detected_variants(gene_variants, gene)

        risk = profile.phenotype_risk_map.get(call.phenotype)
        if risk is None:
            weights = get_confidence_weights()
            score = weights.unmapped_with_variants if gene_variants else weights.unmapped_without_variants
            logger.warning("No risk mapping for %s phenotype %s (%s)", drug, call.phenotype, gene)
            return self._build_result(
                now=now,
                drug=drug,
                risk_label="Unknown",
                confidence=score,
                confidence_details=fixed_confidence_details(score),
                severity="none",
                phenotype=phenotype_name,
                diplotype=call.diplotype,
                primary_gene=gene,
                detected_variants=detected,
                recommendation=(
                    f'Phenotype "{phenotype_name}" does not have a specific risk mapping for {drug}. '
                    f"Consider standard dosing with monitoring."
                ),
                dosing_guideline="No specific guideline: use clinical judgment",
                explanation=profile.description,
                activity_score=call.activity_score,
            )

        breakdown = calculate_confidence(gene_variants, call.detected_star_alleles)

        logger.info(
            "%s: %s %s (%s) -> %s, confidence %.2f",
            drug, gene, call.diplotype, call.phenotype, risk.risk_label, breakdown.score,
        )

        return self._build_result(
            now=now,
            drug=drug,
            risk_label=risk.risk_label,
            confidence=breakdown.score,
            confidence_details=breakdown.to_details(),
            severity=risk.severity,
            phenotype=phenotype_name,
            diplotype=call.diplotype,
            primary_gene=gene,
            detected_variants=detected,
            recommendation=risk.recommendation,
            dosing_guideline=risk.dosing_guideline,
            explanation=risk.explanation,
            mechanism=profile.mechanism,
            activity_score=call.activity_score,
        )

    def assess_many(self, variants: Sequence, drug_names: Sequence[str]) -> List[RiskResult]:
        """Assess each drug independently, preserving input order."""
        return [self.assess_risk(variants, name) for name in drug_names]

    def alternatives_for(self, drug: str, risk_label: str) -> List[str]:
        if risk_label == "Safe":
            return []
        profile = self.kb.get_drug(drug)
        return list(profile.alternatives) if profile else []

    def _build_result(
        self,
        *,
        now: datetime,
        drug: str,
        risk_label: str,
        confidence: float,
        confidence_details: Dict,
        severity: str,
        phenotype: str,
        diplotype: str,
        primary_gene: str,
        detected_variants: List[DetectedVariant],
        recommendation: str,
        dosing_guideline: str,
        explanation: str,
        mechanism: Optional[str] = None,
        activity_score: Optional[float] = None,
    ) -> RiskResult:
        timestamp = now.isoformat().replace("+00:00", "Z")
        patient_id = f"PATIENT_{_to_base36(int(now.timestamp() * 1000)).upper()}"

        return RiskResult(
            patient_id=patient_id,
            drug=drug,
            timestamp=timestamp,
            risk_assessment=RiskAssessment(
                risk_label=risk_label,
                confidence_score=confidence,
                confidence_details=ConfidenceDetails(**confidence_details),
                severity=severity,
            ),
            pharmacogenomic_profile=PharmacogenomicProfile(
                primary_gene=primary_gene,
                diplotype=diplotype,
                phenotype=phenotype,
                detected_variants=detected_variants,
                activity_score=activity_score,
            ),
            clinical_recommendation=ClinicalRecommendation(
                action=recommendation,
                dosing_guideline=dosing_guideline,
                monitoring=monitoring_for(risk_label),
                alternatives=self.alternatives_for(drug, risk_label),
                cpic_guideline_reference=f"CPIC Guideline for {drug} and {primary_gene}",
            ),
            llm_generated_explanation=LLMExplanation(
                summary=explanation,
                mechanism=mechanism or None,
                clinical_significance=clinical_significance_for(severity),
                evidence_level=EVIDENCE_LEVEL,
                citations=[
                    f"CPIC Guideline for {primary_gene} and {drug} (cpicpgx.org)",
                    f"PharmGKB Clinical Annotation for {primary_gene}",
                ],
            ),
            quality_metrics=QualityMetrics(
                vcf_parsing_success=True,
                variants_detected=len(detected_variants),
                gene_coverage=primary_gene,
                analysis_version=get_settings().analysis_version,
                cpic_version=self.kb.version or CPIC_VERSION,
            ),
        )


def create_risk_engine(
    knowledge_base: Optional[KnowledgeBase] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> RiskEngine:
    """Factory used by the pipeline and routes."""
    return RiskEngine(knowledge_base=knowledge_base, clock=clock)
