"""
Analysis Pipeline - Orchestrates VCF -> Risk -> Explanation -> Response.

Receives raw VCF text and a drug list from the API route, runs the full
pharmacogenomic analysis per drug, adds population and inheritance context,
and aggregates the patient-level safety index.
"""
import asyncio
import logging
from typing import List, Optional, Sequence, Union

from pharmaguard.core.config import get_settings
from pharmaguard.core.errors import (
    InputValidationError,
    MissingDrugError,
    VcfFormatError,
    VcfParseError,
)
from pharmaguard.schemas.pharma_schema import (
    AnalysisMetadata,
    AnalysisResponse,
    PopulationContext,
    PopulationFrequency,
    RareVariantWarning,
    RiskResult,
)
from pharmaguard.services.llm.explanation_service import ExplanationService
from pharmaguard.services.pharmacogenomics.confidence import round_half_up
from pharmaguard.services.pharmacogenomics.config import get_population_settings
from pharmaguard.services.pharmacogenomics.population_data import (
    ANCESTRY_IDS,
    Population,
    get_inheritance_info,
    get_population_context,
    is_rare_variant,
)
from pharmaguard.services.pharmacogenomics.risk_engine import RiskEngine, create_risk_engine
from pharmaguard.services.pharmacogenomics.safety_index import compute_safety_index
from pharmaguard.services.vcf.parser import VcfParseResult, parse_vcf, validate_vcf

logger = logging.getLogger(__name__)

RARE_VARIANT_MESSAGE = "Rare Variant - Limited Clinical Evidence"


def parse_drug_names(drug_names: Optional[str]) -> List[str]:
    """Comma-separated, trimmed, upper-cased drug names; empty entries dropped."""
    if not drug_names:
        return []
    return [d.strip().upper() for d in drug_names.split(",") if d.strip()]


def normalize_ancestry(ancestry: Optional[str]) -> str:
    value = (ancestry or Population.GLOBAL).strip().lower() or Population.GLOBAL
    if value not in ANCESTRY_IDS:
        raise InputValidationError(
            f"Unsupported ancestry '{ancestry}'",
            details=f"Supported ancestry codes: {', '.join(ANCESTRY_IDS)}",
        )
    return value


def adjust_confidence_for_rare_variants(confidence: float, rare_count: int) -> float:
    """Deduct per rare variant, never below the floor and never raising the score."""
    if rare_count <= 0:
        return confidence
    settings = get_population_settings()
    reduced = confidence - rare_count * settings.rare_variant_confidence_penalty
    adjusted = max(settings.rare_variant_confidence_floor, round_half_up(reduced))
    return min(confidence, adjusted)


def _decode(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def _validate_content(content: str) -> None:
    if not content or not content.strip():
        raise InputValidationError("Empty VCF file", details="Empty or invalid file content")
    settings = get_settings()
    if len(content) > settings.max_upload_bytes:
        raise InputValidationError("VCF file too large", details=settings.upload_limit_message)

    validation = validate_vcf(content)
    if not validation.valid:
        raise VcfFormatError("Invalid VCF file", details=validation.error)


def annotate_result(
    result: RiskResult,
    parsed: VcfParseResult,
    population: Sequence[PopulationFrequency],
    ancestry: str,
) -> RiskResult:
    """Rare-variant warnings, inheritance, population frequency and parse metadata."""
    annotated = result.model_copy(deep=True)
    by_rsid = {p.rsid: p for p in population if p.rsid}

    warnings = []
    variants = []
    for v in annotated.pharmacogenomic_profile.detected_variants:
        freq = by_rsid.get(v.rsid)
        if is_rare_variant(v.rsid, ancestry):
            warnings.append(
                RareVariantWarning(
                    rsid=v.rsid,
                    gene=v.gene,
                    frequency=freq.frequency if freq else None,
                    message=RARE_VARIANT_MESSAGE,
                    population_note=freq.population_note if freq else None,
                )
            )
        variants.append(
            v.model_copy(update={"inheritance": get_inheritance_info(v.genotype), "population_freq": freq})
        )

    annotated.pharmacogenomic_profile.detected_variants = variants
    annotated.rare_variant_warnings = warnings

    risk = annotated.risk_assessment
    risk.confidence_score = adjust_confidence_for_rare_variants(risk.confidence_score, len(warnings))

    annotated.quality_metrics = annotated.quality_metrics.model_copy(
        update={
            "vcf_parsing_success": True,
            "total_variants_in_file": parsed.metadata.total_variants,
            "pgx_variants_detected": parsed.metadata.pgx_variants,
            "parse_warnings": list(parsed.errors),
            "vcf_version": parsed.metadata.fileformat,
        }
    )
    annotated.population_context = PopulationContext(ancestry=ancestry, applied=ancestry != Population.GLOBAL)
    return annotated


async def _analyze_drug(
    drug: str,
    parsed: VcfParseResult,
    population: Sequence[PopulationFrequency],
    ancestry: str,
    engine: RiskEngine,
    explanations: ExplanationService,
) -> RiskResult:
    result = engine.assess_risk(parsed.variants, drug)
    result = await explanations.enrich(result)
    return annotate_result(result, parsed, population, ancestry)


async def run_analysis_pipeline(
    content: Union[str, bytes],
    drug_names: Optional[str],
    ancestry: Optional[str] = Population.GLOBAL,
    *,
    risk_engine: Optional[RiskEngine] = None,
    explanation_service: Optional[ExplanationService] = None,
) -> AnalysisResponse:
    """
    Orchestrates the full analysis.

    Raises PharmaGuardError subclasses for input, format and parse failures;
    unsupported drugs produce ``Unknown`` results instead.
    """
    text = _decode(content)
    _validate_content(text)
    ancestry = normalize_ancestry(ancestry)

    drugs = parse_drug_names(drug_names)
    if not drugs:
        raise MissingDrugError("No valid drug names provided", details="Please enter at least one drug name")

    parsed = parse_vcf(text)
    if parsed.errors and not parsed.variants:
        raise VcfParseError("VCF parsing failed", details="; ".join(parsed.errors), parse_errors=parsed.errors)

    logger.info(
        "Analyzing %d drug(s) against %d pharmacogenomic variant(s), ancestry=%s",
        len(drugs), len(parsed.variants), ancestry,
    )

    population = get_population_context(parsed.variants, ancestry)
    engine = risk_engine or create_risk_engine()
    explanations = explanation_service or ExplanationService()

    results = await asyncio.gather(
        *(_analyze_drug(drug, parsed, population, ancestry, engine, explanations) for drug in drugs)
    )
    results = list(results)

    safety_index = compute_safety_index(results)

    return AnalysisResponse(
        results=results,
        result=results[0] if len(results) == 1 else None,
        safety_index=safety_index,
        ancestry=ancestry,
        metadata=AnalysisMetadata(
            total_variants=parsed.metadata.total_variants,
            pgx_variants=parsed.metadata.pgx_variants,
            drugs_analyzed=len(drugs),
            parse_errors=list(parsed.errors),
        ),
    )
