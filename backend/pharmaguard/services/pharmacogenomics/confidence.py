"""
Confidence Scoring - additive evidence score for a risk assessment.

Confidence starts low and is earned from data quality signals: how many gene
variants were seen, how many star alleles they resolved to, their average
QUAL, and whether the genotype call was homozygous. The final score is
rounded to two decimals and capped below certainty.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .config import ConfidenceWeights, get_confidence_weights
from .phenotype_mapper import is_homozygous


# ---------------------------------------------------------------------------
# Confidence levels
# ---------------------------------------------------------------------------

HIGH_LEVEL_THRESHOLD = 0.75
MODERATE_LEVEL_THRESHOLD = 0.50


def round_half_up(value: float, digits: int = 2) -> float:
    """Round to ``digits`` decimals with halves going up (0.125 -> 0.13)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def confidence_level(score: float) -> str:
    """Map a numeric confidence score to a human-readable level."""
    if score >= HIGH_LEVEL_THRESHOLD:
        return "High"
    if score >= MODERATE_LEVEL_THRESHOLD:
        return "Moderate"
    return "Low"


# ---------------------------------------------------------------------------
# Confidence Breakdown - every component tracked independently
# ---------------------------------------------------------------------------

@dataclass
class ConfidenceBreakdown:
    """
    Itemised confidence components.

    ``score`` is the capped, rounded sum of all components; the raw
    components stay available for display and auditing.
    """

    base: float = 0.0
    variant_bonus: float = 0.0
    star_allele_bonus: float = 0.0
    quality_bonus: float = 0.0
    homozygous_bonus: float = 0.0
    high_quality_bonus: float = 0.0
    cap: float = 0.95

    avg_quality: float = 0.0
    variant_count: int = 0
    star_allele_count: int = 0
    has_homozygous: bool = False

    components_applied: List[str] = field(default_factory=list)

    @property
    def raw_total(self) -> float:
        return (
            self.base
            + self.variant_bonus
            + self.star_allele_bonus
            + self.quality_bonus
            + self.homozygous_bonus
            + self.high_quality_bonus
        )

    @property
    def score(self) -> float:
        return min(round_half_up(self.raw_total), self.cap)

    @property
    def level(self) -> str:
        return confidence_level(self.score)

    def to_details(self) -> Dict[str, object]:
        """Shape used for ``risk_assessment.confidence_details``."""
        return {
            "score": self.score,
            "avg_quality": int(round_half_up(self.avg_quality, 0)),
            "variant_count": self.variant_count,
            "star_allele_count": self.star_allele_count,
            "has_homozygous": self.has_homozygous,
            "level": self.level,
        }


def average_quality(variants: Sequence) -> float:
    """Mean QUAL over the variants; missing QUAL counts as 0."""
    total = sum((v.qual or 0.0) for v in variants)
    return total / max(len(variants), 1)


def calculate_confidence(
    gene_variants: Sequence,
    detected_star_alleles: Sequence[str],
    weights: Optional[ConfidenceWeights] = None,
) -> ConfidenceBreakdown:
    """
    Calculate confidence from the variants of the drug's primary gene.

    Components:
      base                      weights.base
      variants                  min(count * per_variant, max_variant_bonus)
      star alleles              single or multiple bonus
      average QUAL              min(avg / 100, 1) * max_quality_bonus
      homozygous call present   homozygous_bonus
      average QUAL > threshold  high_quality_bonus
    """
    w = weights or get_confidence_weights()
    bd = ConfidenceBreakdown(base=w.base, cap=w.max_confidence)
    bd.components_applied.append(f"Base confidence (+{w.base:.2f})")

    bd.variant_count = len(gene_variants)
    bd.variant_bonus = min(bd.variant_count * w.per_variant, w.max_variant_bonus)
    if bd.variant_bonus:
        bd.components_applied.append(f"{bd.variant_count} gene variant(s) (+{bd.variant_bonus:.2f})")

    bd.star_allele_count = len(detected_star_alleles)
    if bd.star_allele_count == 1:
        bd.star_allele_bonus = w.single_star_allele
    elif bd.star_allele_count >= 2:
        bd.star_allele_bonus = w.multiple_star_alleles
    if bd.star_allele_bonus:
        bd.components_applied.append(
            f"{bd.star_allele_count} star allele(s) called (+{bd.star_allele_bonus:.2f})"
        )

    bd.avg_quality = average_quality(gene_variants)
    if bd.avg_quality > 0:
        bd.quality_bonus = min(bd.avg_quality / 100.0, 1.0) * w.max_quality_bonus
        bd.components_applied.append(f"Average QUAL {bd.avg_quality:.1f} (+{bd.quality_bonus:.2f})")

    bd.has_homozygous = any(is_homozygous(v.genotype) for v in gene_variants)
    if bd.has_homozygous:
        bd.homozygous_bonus = w.homozygous_bonus
        bd.components_applied.append(f"Homozygous call (+{w.homozygous_bonus:.2f})")

    if bd.avg_quality > w.high_quality_threshold:
        bd.high_quality_bonus = w.high_quality_bonus
        bd.components_applied.append(f"High average QUAL (+{w.high_quality_bonus:.2f})")

    return bd


def fixed_confidence_details(score: float) -> Dict[str, object]:
    """Details for fallback results whose confidence is not computed from evidence."""
    return {
        "score": score,
        "avg_quality": 0,
        "variant_count": 0,
        "star_allele_count": 0,
        "has_homozygous": False,
        "level": confidence_level(score),
    }
