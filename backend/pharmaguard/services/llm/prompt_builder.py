import re
from typing import Dict, Optional

from pharmaguard.schemas.pharma_schema import RiskResult

SECTION_NAMES = (
    "SUMMARY",
    "MECHANISM",
    "CLINICAL_SIGNIFICANCE",
    "VARIANT_CITATIONS",
    "CONFIDENCE_EXPLANATION",
)

SYSTEM_PROMPT = (
    "You are a clinical pharmacogenomics expert. "
    "Provide clear, evidence-based explanations using the exact format requested."
)

SUMMARY_FALLBACK_CHARS = 500


def build_prompt(result: RiskResult) -> str:
    """
    Constructs a prompt for the LLM to explain one risk result.

    The reply is expected to contain the sections in ``SECTION_NAMES`` as
    ``HEADER:`` blocks so that ``parse_sections`` can split it.
    """
    pgx = result.pharmacogenomic_profile
    risk = result.risk_assessment
    rec = result.clinical_recommendation

    variants_list = "\n".join(
        f"- {v.rsid} ({v.gene} {v.star_allele or ''}): {v.ref_allele}->{v.alt_allele}, "
        f"Genotype: {v.genotype}, Impact: {v.functional_impact}"
        for v in pgx.detected_variants
    )
    if not variants_list:
        variants_list = f"No specific variants detected: assumed reference genotype ({pgx.diplotype})"

    return f"""You are a clinical pharmacogenomics expert. Provide a clear, evidence-based explanation for a patient's drug risk assessment.

PATIENT PHARMACOGENOMIC DATA:
- Drug: {result.drug}
- Primary Gene: {pgx.primary_gene}
- Diplotype: {pgx.diplotype}
- Phenotype: {pgx.phenotype}
- Risk Label: {risk.risk_label}
- Severity: {risk.severity}
- Confidence: {risk.confidence_score}

DETECTED VARIANTS:
{variants_list}

CLINICAL RECOMMENDATION:
{rec.action}
Dosing: {rec.dosing_guideline}

Please provide a response in EXACTLY this format (use these exact headers):

SUMMARY:
[2-3 sentence patient-friendly summary of what this means]

MECHANISM:
[Explain the biological mechanism: how the gene affects drug metabolism/response, citing specific variants]

CLINICAL_SIGNIFICANCE:
[Clinical importance and what actions should be taken]

VARIANT_CITATIONS:
[List each variant with its clinical evidence, referencing CPIC guidelines]

CONFIDENCE_EXPLANATION:
[Explain the confidence level and any limitations of this assessment]

Keep explanations accessible but scientifically accurate. Reference CPIC guidelines where applicable."""


def extract_section(text: str, name: str) -> Optional[str]:
    """Body of one section in ``NAME:``, ``**NAME**`` or ``## NAME`` form."""
    patterns = (
        rf"{name}:\s*\n([\s\S]*?)(?=\n[A-Z_]+:|\Z)",
        rf"\*\*{name}\*\*:?\s*\n([\s\S]*?)(?=\n\*\*[A-Z_]+\*\*|\Z)",
        rf"## {name}\s*\n([\s\S]*?)(?=\n## |\Z)",
    )
    for pattern in patterns:
        match = re.search(pattern, text, flags=re.IGNORECASE)
        if match and match.group(1):
            body = match.group(1).strip()
            if body:
                return body
    return None


def parse_sections(text: str) -> Dict[str, Optional[str]]:
    sections = {name.lower(): extract_section(text, name) for name in SECTION_NAMES}
    if not sections["summary"]:
        sections["summary"] = text[:SUMMARY_FALLBACK_CHARS]
    return sections
