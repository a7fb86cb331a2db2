"""
Phenotype Mapper - Diplotype resolution and phenotype determination.

Reduces the variants annotated for one gene to a diplotype, a summed activity
score and a phenotype code. The resolver does not phase haplotypes: it takes
star alleles in the order they are first seen and uses the genotype of the
carrying variant to decide between homozygous and heterozygous calls.
"""

import logging
import re
from typing import List, Optional, Sequence

from .knowledge_base import KnowledgeBase, get_knowledge_base
from .models import (
    SCALE_REFERENCE_PHENOTYPE,
    TRANSPORTER_SCALE,
    DiplotypeCall,
)

logger = logging.getLogger(__name__)

_GENOTYPE_SPLIT = re.compile(r"[/|]")

# Activity score thresholds, highest first
METABOLIZER_THRESHOLDS = (
    (2.25, "URM"),
    (1.5, "RM"),
    (1.0, "NM"),
)
TRANSPORTER_THRESHOLDS = (
    (2.0, "NF"),
    (1.0, "DF"),
)


def split_genotype(genotype: Optional[str]) -> List[str]:
    if not genotype:
        return []
    return _GENOTYPE_SPLIT.split(genotype)


def is_homozygous(genotype: Optional[str]) -> bool:
    """True for a two-allele genotype whose alleles match and are non-reference (e.g. 1/1, 2|2)."""
    alleles = split_genotype(genotype)
    if len(alleles) != 2:
        return False
    a1, a2 = alleles
    if a1 == "." or a2 == ".":
        return False
    return a1 == a2 and a1 != "0"


def determine_phenotype(gene: str, activity_score: float, knowledge_base: Optional[KnowledgeBase] = None) -> str:
    """
    Classify a summed activity score on the gene's scale.

    Transporter genes use NF / DF / PF; every other gene uses the
    URM / RM / NM / IM / PM metabolizer scale.
    """
    kb = knowledge_base or get_knowledge_base()
    gene_def = kb.get_gene(gene)

    if gene_def is not None and gene_def.phenotype_scale == TRANSPORTER_SCALE:
        for threshold, code in TRANSPORTER_THRESHOLDS:
            if activity_score >= threshold:
                return code
        return "PF"

    for threshold, code in METABOLIZER_THRESHOLDS:
        if activity_score >= threshold:
            return code
    if activity_score > 0:
        return "IM"
    return "PM"


class DiplotypeResolver:
    """Resolves a diplotype for one gene from annotated variant records."""

    def __init__(self, knowledge_base: Optional[KnowledgeBase] = None):
        self.kb = knowledge_base or get_knowledge_base()

    def resolve(self, variants: Sequence, gene: str) -> DiplotypeCall:
        """
        Main entry point for diplotype resolution.

        ``variants`` may contain records for any gene; only annotations for
        ``gene`` are considered.
        """
        gene = gene.upper()
        gene_def = self.kb.get_gene(gene)
        reference = gene_def.reference_allele if gene_def else "*1"

        gene_variants = [v for v in variants if any(a.gene == gene for a in v.pgx_annotations)]
        detected = self._detected_star_alleles(gene_variants, gene)

        if not detected:
            return self._reference_call(gene, reference, gene_def)

        if len(detected) == 1:
            allele1 = detected[0]
            carrier = self._first_carrier(gene_variants, gene, allele1)
            if carrier is not None and is_homozygous(carrier.genotype):
                allele2 = allele1
            else:
                allele2 = reference
        else:
            # First two by encounter order; no haplotype phasing
            allele1, allele2 = detected[0], detected[1]

        score = self.kb.activity_score(gene, allele1) + self.kb.activity_score(gene, allele2)
        phenotype = determine_phenotype(gene, score, self.kb)

        logger.debug("%s resolved to %s/%s (activity %.2f, %s)", gene, allele1, allele2, score, phenotype)

        return DiplotypeCall(
            gene=gene,
            diplotype=f"{allele1}/{allele2}",
            allele1=allele1,
            allele2=allele2,
            detected_star_alleles=detected,
            activity_score=score,
            phenotype=phenotype,
        )

    def _reference_call(self, gene: str, reference: str, gene_def) -> DiplotypeCall:
        """Reference/reference pairing: two reference copies, the scale's normal class."""
        scale = gene_def.phenotype_scale if gene_def else None
        phenotype = SCALE_REFERENCE_PHENOTYPE.get(scale, "NM")
        return DiplotypeCall(
            gene=gene,
            diplotype=f"{reference}/{reference}",
            allele1=reference,
            allele2=reference,
            detected_star_alleles=[],
            activity_score=2.0,
            phenotype=phenotype,
        )

    @staticmethod
    def _detected_star_alleles(gene_variants: Sequence, gene: str) -> List[str]:
        detected: List[str] = []
        for variant in gene_variants:
            for ann in variant.pgx_annotations:
                if ann.gene == gene and ann.star_allele and ann.star_allele not in detected:
                    detected.append(ann.star_allele)
        return detected

    @staticmethod
    def _first_carrier(gene_variants: Sequence, gene: str, star_allele: str):
        for variant in gene_variants:
            for ann in variant.pgx_annotations:
                if ann.gene == gene and ann.star_allele == star_allele:
                    return variant
        return None

