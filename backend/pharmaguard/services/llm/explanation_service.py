"""
Explanation enrichment for risk results.

Two providers share one interface: the deterministic template provider and the
remote LLM provider. ``ExplanationService.enrich`` always returns a result;
whenever the LLM is unconfigured, slow, failing or empty it substitutes the
template explanation.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from pharmaguard.core.config import Settings, get_settings
from pharmaguard.schemas.pharma_schema import LLMExplanation, RiskResult

from .groq_client import GroqClient
from .prompt_builder import SYSTEM_PROMPT, build_prompt, parse_sections

logger = logging.getLogger(__name__)

TEMPLATE_MODEL = "template-fallback"

HIGH_CONFIDENCE_NOTE = "High confidence: well-characterized variants with strong CPIC evidence."
MODERATE_CONFIDENCE_NOTE = (
    "Moderate confidence: known variants detected but assessment may benefit from confirmatory testing."
)
LOW_CONFIDENCE_NOTE = (
    "Lower confidence: limited variant data available. "
    "Consider comprehensive pharmacogenomic panel for definitive results."
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ExplanationProvider:
    """Produces an LLMExplanation for a finished risk result."""

    name = "base"

    async def explain(self, result: RiskResult) -> Optional[LLMExplanation]:
        raise NotImplementedError


class TemplateExplanationProvider(ExplanationProvider):
    name = "template"

    async def explain(self, result: RiskResult) -> LLMExplanation:
        return self.build(result)

    def build(self, result: RiskResult) -> LLMExplanation:
        pgx = result.pharmacogenomic_profile
        risk = result.risk_assessment
        rec = result.clinical_recommendation
        variants = pgx.detected_variants

        if variants:
            citations = " ".join(
                f"{v.rsid} in {v.gene} ({v.star_allele or 'unknown allele'}): {v.functional_impact}. "
                f"This variant is classified by CPIC as having {v.functional_impact.lower()} "
                f"functional impact on {v.gene} enzyme activity."
                for v in variants
            )
        else:
            citations = (
                f"No specific variants detected. The patient is assumed to carry the reference genotype "
                f"({pgx.diplotype}) for {pgx.primary_gene}, indicating normal enzyme function."
            )

        if risk.confidence_score >= 0.8:
            confidence_note = HIGH_CONFIDENCE_NOTE
        elif risk.confidence_score >= 0.6:
            confidence_note = MODERATE_CONFIDENCE_NOTE
        else:
            confidence_note = LOW_CONFIDENCE_NOTE

        mechanism = result.llm_generated_explanation.mechanism or (
            f"{pgx.primary_gene} encodes an enzyme/transporter critical for {result.drug} metabolism. "
            f"The patient's {pgx.diplotype} diplotype results in {pgx.phenotype.lower()} activity, "
            f"which directly affects drug efficacy and safety."
        )

        return LLMExplanation(
            summary=(
                f"Based on pharmacogenomic analysis, the patient's {pgx.primary_gene} genotype ({pgx.diplotype}) "
                f"classifies them as a {pgx.phenotype}. For {result.drug}, this results in a risk assessment of "
                f'"{risk.risk_label}" with {risk.severity} severity. {rec.action}'
            ),
            mechanism=mechanism,
            clinical_significance=(
                f"Risk Level: {risk.risk_label} ({risk.severity}). {rec.action}. "
                f"Dosing guidance: {rec.dosing_guideline}."
            ),
            variant_citations=citations,
            confidence_explanation=(
                f"Confidence score: {risk.confidence_score}. This assessment is based on {len(variants)} "
                f"detected pharmacogenomic variant(s) in {pgx.primary_gene}. {confidence_note}"
            ),
            model_used=TEMPLATE_MODEL,
            generated_at=_now_iso(),
        )


class LLMExplanationProvider(ExplanationProvider):
    """Remote provider backed by the Groq chat completions API."""

    name = "llm"

    def __init__(self, client: Optional[GroqClient] = None):
        self.client = client or GroqClient()

    async def explain(self, result: RiskResult) -> Optional[LLMExplanation]:
        text = await self.client.generate_text(build_prompt(result), system_prompt=SYSTEM_PROMPT)
        if not text:
            return None
        sections = parse_sections(text)
        return LLMExplanation(
            summary=sections["summary"],
            mechanism=sections["mechanism"],
            clinical_significance=sections["clinical_significance"],
            variant_citations=sections["variant_citations"],
            confidence_explanation=sections["confidence_explanation"],
            model_used=self.client.model_name,
            generated_at=_now_iso(),
        )


def get_explanation_provider(settings: Optional[Settings] = None) -> ExplanationProvider:
    """Select the provider from EXPLANATION_PROVIDER (auto | llm | template)."""
    settings = settings or get_settings()
    choice = (settings.explanation_provider or "auto").strip().lower()

    if choice == "template":
        return TemplateExplanationProvider()
    if choice == "llm" or (choice == "auto" and settings.llm_configured):
        if not settings.llm_configured:
            logger.warning("EXPLANATION_PROVIDER=llm but GROQ_API_KEY is not set; using template explanations")
            return TemplateExplanationProvider()
        return LLMExplanationProvider()
    if choice not in ("auto", "llm"):
        logger.warning("Unknown EXPLANATION_PROVIDER %r; using template explanations", choice)
    return TemplateExplanationProvider()


def merge_explanation(base: LLMExplanation, extra: LLMExplanation) -> LLMExplanation:
    """Overlay the non-empty fields of ``extra`` on ``base``."""
    updates = {k: v for k, v in extra.model_dump().items() if v not in (None, "", [])}
    return base.model_copy(update=updates)


class ExplanationService:
    """Runs the configured provider under a timeout, falling back to the template."""

    def __init__(
        self,
        provider: Optional[ExplanationProvider] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.provider = provider or get_explanation_provider()
        self.timeout_seconds = timeout_seconds or get_settings().llm_timeout_seconds
        self.template = TemplateExplanationProvider()

    async def explain(self, result: RiskResult) -> LLMExplanation:
        if isinstance(self.provider, TemplateExplanationProvider):
            return self.provider.build(result)

        try:
            explanation = await asyncio.wait_for(self.provider.explain(result), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Explanation provider %s timed out after %.1fs; using template",
                           self.provider.name, self.timeout_seconds)
            return self.template.build(result)
        except Exception as e:
            logger.warning("Explanation provider %s failed (%s); using template", self.provider.name, e)
            return self.template.build(result)

        if explanation is None:
            logger.warning("Explanation provider %s returned no text; using template", self.provider.name)
            return self.template.build(result)
        return explanation

    async def enrich(self, result: RiskResult) -> RiskResult:
        """Return a copy of ``result`` with the explanation merged over the engine's."""
        explanation = await self.explain(result)
        merged = merge_explanation(result.llm_generated_explanation, explanation)
        return result.model_copy(update={"llm_generated_explanation": merged})
