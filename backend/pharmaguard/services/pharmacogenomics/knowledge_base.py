"""
Knowledge Base Loader - process-wide, read-only pharmacogenomic reference data.

Loads gene definitions, drug risk tables and phenotype names from
knowledge_base.json once, validates them, and builds the reverse rsID index.
The loaded instance is shared by every request and never written afterwards.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from .config import get_config
from .models import (
    SCALE_PHENOTYPES,
    DrugProfile,
    GeneDefinition,
    RsidMatch,
)

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_ACTIVITY_SCORE = 1.0


class KnowledgeBase:
    """Curated gene/drug tables plus the derived rsID reverse index."""

    def __init__(
        self,
        genes: Dict[str, GeneDefinition],
        drugs: Dict[str, DrugProfile],
        phenotype_names: Dict[str, str],
        version: str = "CPIC 2024",
    ):
        self._genes = dict(genes)
        self._drugs = dict(drugs)
        self._phenotype_names = dict(phenotype_names)
        self.version = version

        self._validate()
        self._rsid_index = build_rsid_index(self._genes)

        logger.info(
            "Knowledge base initialized: %d genes, %d drugs, %d indexed rsIDs",
            len(self._genes), len(self._drugs), len(self._rsid_index),
        )

    @classmethod
    def from_dict(cls, data: Dict) -> "KnowledgeBase":
        genes = {
            symbol.upper(): GeneDefinition(**{**gene, "symbol": symbol.upper()})
            for symbol, gene in data.get("genes", {}).items()
        }
        drugs = {
            name.upper(): DrugProfile(**{**drug, "name": name.upper(), "gene": drug["gene"].upper()})
            for name, drug in data.get("drugs", {}).items()
        }
        return cls(
            genes=genes,
            drugs=drugs,
            phenotype_names=data.get("phenotype_names", {}),
            version=data.get("version", "CPIC 2024"),
        )

    @classmethod
    def from_file(cls, path: Path) -> "KnowledgeBase":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def _validate(self):
        """Fail fast on tables that would make phenotype or risk lookup inconsistent."""
        for symbol, gene in self._genes.items():
            if gene.phenotype_scale not in SCALE_PHENOTYPES:
                raise ValueError(f"Gene {symbol}: unknown phenotype scale '{gene.phenotype_scale}'")
            reference = gene.star_alleles.get(gene.reference_allele)
            if reference is None:
                raise ValueError(
                    f"Gene {symbol}: reference allele {gene.reference_allele} missing from star allele table"
                )
            if symbol.startswith("CYP") and reference.activity_score != 1.0:
                raise ValueError(
                    f"Gene {symbol}: reference allele {gene.reference_allele} must have activity score 1.0"
                )

        for name, drug in self._drugs.items():
            gene = self._genes.get(drug.gene)
            if gene is None:
                raise ValueError(f"Drug {name}: primary gene {drug.gene} is not defined")
            unknown = set(drug.phenotype_risk_map) - set(gene.phenotype_codes)
            if unknown:
                raise ValueError(
                    f"Drug {name}: phenotype keys {sorted(unknown)} cannot be produced "
                    f"by the {gene.phenotype_scale} scale of {gene.symbol}"
                )

    # ----------------------------------------------------------------
    # Accessors
    # ----------------------------------------------------------------

    @property
    def genes(self) -> Dict[str, GeneDefinition]:
        return dict(self._genes)

    @property
    def drugs(self) -> Dict[str, DrugProfile]:
        return dict(self._drugs)

    @property
    def rsid_index(self) -> Dict[str, Tuple[RsidMatch, ...]]:
        return dict(self._rsid_index)

    @property
    def supported_drugs(self) -> List[str]:
        return list(self._drugs.keys())

    @property
    def known_genes(self) -> FrozenSet[str]:
        return frozenset(self._genes.keys())

    def get_gene(self, symbol: str) -> Optional[GeneDefinition]:
        return self._genes.get((symbol or "").upper())

    def get_drug(self, name: str) -> Optional[DrugProfile]:
        return self._drugs.get((name or "").strip().upper())

    def is_drug_supported(self, name: str) -> bool:
        return self.get_drug(name) is not None

    def lookup_rsid(self, rsid: str) -> Tuple[RsidMatch, ...]:
        return self._rsid_index.get(rsid, ())

    def activity_score(self, gene: str, allele: str, default: float = DEFAULT_ACTIVITY_SCORE) -> float:
        gene_def = self.get_gene(gene)
        if gene_def is None:
            return default
        allele_def = gene_def.star_alleles.get(allele)
        return allele_def.activity_score if allele_def is not None else default

    def phenotype_name(self, code: str) -> str:
        return self._phenotype_names.get(code, "Unknown")

    def phenotype_codes(self, gene: str) -> Tuple[str, ...]:
        gene_def = self.get_gene(gene)
        return gene_def.phenotype_codes if gene_def else ()


def build_rsid_index(genes: Dict[str, GeneDefinition]) -> Dict[str, Tuple[RsidMatch, ...]]:
    """Build the rsID -> (gene, star allele, function, activity score) reverse index."""
    index: Dict[str, List[RsidMatch]] = {}
    seen = set()
    for gene_name, gene in genes.items():
        for star_allele, allele in gene.star_alleles.items():
            for rsid in allele.rsids:
                key = (rsid, gene_name, star_allele)
                if key in seen:
                    continue
                seen.add(key)
                index.setdefault(rsid, []).append(
                    RsidMatch(
                        gene=gene_name,
                        star_allele=star_allele,
                        function=allele.function,
                        activity_score=allele.activity_score,
                    )
                )
    return {rsid: tuple(matches) for rsid, matches in index.items()}


def _knowledge_base_path() -> Path:
    return PACKAGE_DIR / get_config().knowledge_base_path


@lru_cache(maxsize=1)
def get_knowledge_base() -> KnowledgeBase:
    """Get the shared knowledge base instance, loading it on first use."""
    return KnowledgeBase.from_file(_knowledge_base_path())


def reload_knowledge_base() -> KnowledgeBase:
    """Drop the cached instance and load the tables again."""
    get_knowledge_base.cache_clear()
    return get_knowledge_base()
