"""
Population Frequency Data for Pharmacogenomic Variants

Variant allele frequencies by ancestry group, used to flag rare variants and
to annotate detected variants with population and inheritance notes.

Data sources (approximate):
- gnomAD
- 1000 Genomes Project

Note: These are approximate frequencies for coarse ancestry groups.
For production use, consider using live APIs or more detailed datasets.
"""

from typing import Dict, List, Optional, Sequence

from pharmaguard.schemas.pharma_schema import InheritanceInfo, PopulationFrequency

from .config import get_population_settings
from .phenotype_mapper import split_genotype


# Population codes
class Population:
    """Ancestry codes accepted by the analysis endpoint."""
    GLOBAL = "global"  # Aggregated across populations
    SOUTH_ASIAN = "south_asian"
    EAST_ASIAN = "east_asian"
    AFRICAN = "african"  # African / African American
    EUROPEAN = "european"
    OTHER = "other"  # Other / Mixed


ANCESTRY_OPTIONS = [
    {"id": Population.GLOBAL, "label": "Global Average"},
    {"id": Population.SOUTH_ASIAN, "label": "South Asian"},
    {"id": Population.EAST_ASIAN, "label": "East Asian"},
    {"id": Population.AFRICAN, "label": "African / African American"},
    {"id": Population.EUROPEAN, "label": "European"},
    {"id": Population.OTHER, "label": "Other / Mixed"},
]

ANCESTRY_IDS = tuple(opt["id"] for opt in ANCESTRY_OPTIONS)

NO_DATA_NOTE = "No population frequency data available."


def _row(global_, south_asian, east_asian, african, european, other) -> Dict[str, float]:
    return {
        Population.GLOBAL: global_,
        Population.SOUTH_ASIAN: south_asian,
        Population.EAST_ASIAN: east_asian,
        Population.AFRICAN: african,
        Population.EUROPEAN: european,
        Population.OTHER: other,
    }


# ===== Allele frequencies per rsID per ancestry =====

FREQUENCY_TABLE: Dict[str, Dict[str, float]] = {
    # CYP2D6
    "rs3892097": _row(0.20, 0.12, 0.01, 0.06, 0.22, 0.15),
    "rs16947": _row(0.34, 0.36, 0.16, 0.35, 0.33, 0.30),
    "rs35742686": _row(0.02, 0.01, 0.00, 0.01, 0.02, 0.01),
    # CYP2C19
    "rs4244285": _row(0.24, 0.34, 0.30, 0.17, 0.15, 0.22),
    "rs12248560": _row(0.21, 0.16, 0.04, 0.24, 0.21, 0.18),
    # CYP2C9
    "rs1799853": _row(0.10, 0.08, 0.02, 0.02, 0.13, 0.08),
    "rs1057910": _row(0.06, 0.10, 0.04, 0.01, 0.07, 0.05),
    # SLCO1B1
    "rs4149056": _row(0.15, 0.05, 0.12, 0.02, 0.18, 0.12),
    "rs2306283": _row(0.47, 0.42, 0.70, 0.77, 0.40, 0.50),
    # TPMT
    "rs1800460": _row(0.03, 0.02, 0.00, 0.01, 0.04, 0.02),
    "rs1142345": _row(0.05, 0.03, 0.02, 0.08, 0.05, 0.04),
    # DPYD
    "rs3918290": _row(0.01, 0.00, 0.00, 0.00, 0.01, 0.005),
    "rs67376798": _row(0.01, 0.005, 0.00, 0.005, 0.01, 0.005),
}


def ancestry_label(ancestry: str) -> str:
    for opt in ANCESTRY_OPTIONS:
        if opt["id"] == ancestry:
            return opt["label"]
    return ancestry


def get_frequency(
    rsid: Optional[str],
    ancestry: str = Population.GLOBAL,
    table: Optional[Dict[str, Dict[str, float]]] = None,
) -> Optional[float]:
    """Frequency for the ancestry, falling back to the global entry; None when the rsID has no data."""
    freqs = (table if table is not None else FREQUENCY_TABLE).get(rsid or "")
    if not freqs:
        return None
    freq = freqs.get(ancestry)
    if freq is None:
        freq = freqs.get(Population.GLOBAL)
    return freq


def is_rare_variant(
    rsid: Optional[str],
    ancestry: str = Population.GLOBAL,
    table: Optional[Dict[str, Dict[str, float]]] = None,
) -> bool:
    """
    Rare means strictly below the configured threshold (1% by default).

    An rsID without frequency data is not rare: absence of data is not
    evidence of rarity.
    """
    freq = get_frequency(rsid, ancestry, table)
    if freq is None:
        return False
    return freq < get_population_settings().rare_frequency_threshold


def _percent(freq: float) -> str:
    return f"{freq * 100:.1f}"


def describe_frequency(
    rsid: Optional[str],
    ancestry: str = Population.GLOBAL,
    table: Optional[Dict[str, Dict[str, float]]] = None,
) -> PopulationFrequency:
    freq = get_frequency(rsid, ancestry, table)
    if freq is None:
        return PopulationFrequency(rsid=rsid, frequency=None, rare=False, population_note=NO_DATA_NOTE)

    rare = is_rare_variant(rsid, ancestry, table)
    pct = _percent(freq)
    label = ancestry_label(ancestry)
    if rare:
        note = f"Rare variant in {label} population ({pct}% frequency). Limited clinical evidence available."
    else:
        note = f"Found in {pct}% of {label} population."

    return PopulationFrequency(
        rsid=rsid,
        frequency=freq,
        frequency_percent=pct,
        rare=rare,
        ancestry=ancestry,
        population_note=note,
    )


def get_population_context(variants: Sequence, ancestry: str = Population.GLOBAL) -> List[PopulationFrequency]:
    """One frequency annotation per variant, keyed by its first rsID."""
    return [describe_frequency(v.primary_rsid, ancestry) for v in variants]


def get_all_frequencies(rsid: str) -> Optional[Dict[str, float]]:
    """Frequencies for one rsID across all ancestry groups, or None."""
    freqs = FREQUENCY_TABLE.get(rsid)
    return dict(freqs) if freqs else None


def get_inheritance_info(genotype: Optional[str]) -> Optional[InheritanceInfo]:
    """
    Zygosity and inheritance note for a two-allele genotype.

    Reference (0/0), missing, malformed and no-call genotypes return None.
    """
    alleles = split_genotype(genotype)
    if len(alleles) != 2:
        return None
    a1, a2 = alleles
    if a1 == "." or a2 == ".":
        return None
    if a1 == "0" and a2 == "0":
        return None

    homozygous = a1 == a2
    if homozygous:
        message = "This variant is present on both copies of the gene. It was likely inherited from both parents."
    else:
        message = "This variant is present on one copy of the gene. It was likely inherited from one parent."

    return InheritanceInfo(
        zygosity="Homozygous" if homozygous else "Heterozygous",
        inherited=True,
        message=message,
        family_note="This variant may be shared with close relatives. Optional family screening could be considered.",
    )
