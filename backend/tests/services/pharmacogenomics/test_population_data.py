"""
Unit tests for population frequency lookups, rare-variant detection and
inheritance notes.
"""

import pytest

from conftest import build_vcf, vcf_line
from pharmaguard.services.pharmacogenomics.config import update_config
from pharmaguard.services.pharmacogenomics.population_data import (
    ANCESTRY_IDS,
    NO_DATA_NOTE,
    Population,
    ancestry_label,
    describe_frequency,
    get_all_frequencies,
    get_frequency,
    get_inheritance_info,
    get_population_context,
    is_rare_variant,
)
from pharmaguard.services.vcf.parser import parse_vcf


@pytest.fixture
def boundary_table():
    return {
        "rsAT": {Population.GLOBAL: 0.01},
        "rsBELOW": {Population.GLOBAL: 0.0099},
        "rsPARTIAL": {Population.GLOBAL: 0.30, Population.EUROPEAN: 0.004},
    }


class TestFrequencyLookup:

    def test_ancestry_specific(self):
        assert get_frequency("rs3892097", Population.EAST_ASIAN) == 0.01
        assert get_frequency("rs3892097", Population.EUROPEAN) == 0.22

    def test_falls_back_to_global(self, boundary_table):
        assert get_frequency("rsPARTIAL", Population.AFRICAN, boundary_table) == 0.30
        assert get_frequency("rsPARTIAL", Population.EUROPEAN, boundary_table) == 0.004

    def test_unknown_rsid(self):
        assert get_frequency("rs0") is None
        assert get_frequency(None) is None

    def test_all_frequencies(self):
        freqs = get_all_frequencies("rs4244285")

        assert set(freqs) == set(ANCESTRY_IDS)
        assert get_all_frequencies("rs0") is None

    def test_labels(self):
        assert ancestry_label("african") == "African / African American"
        assert ancestry_label("martian") == "martian"


class TestRareVariants:
    """Rarity is strictly below the threshold."""

    def test_threshold_is_strict(self, boundary_table):
        assert not is_rare_variant("rsAT", table=boundary_table)
        assert is_rare_variant("rsBELOW", table=boundary_table)

    def test_no_data_is_not_rare(self):
        assert not is_rare_variant("rs0")

    def test_rarity_depends_on_ancestry(self):
        assert is_rare_variant("rs1057910", Population.AFRICAN) is False
        assert is_rare_variant("rs4244285", Population.EAST_ASIAN) is False
        assert is_rare_variant("rs35742686", Population.EAST_ASIAN) is True

    def test_threshold_from_config(self, boundary_table):
        update_config(**{"population.rare_frequency_threshold": 0.02})
        assert is_rare_variant("rsAT", table=boundary_table)


class TestDescribeFrequency:

    def test_common_variant_note(self):
        pf = describe_frequency("rs3892097", Population.EUROPEAN)

        assert pf.frequency == 0.22
        assert pf.frequency_percent == "22.0"
        assert not pf.rare
        assert pf.population_note == "Found in 22.0% of European population."

    def test_rare_variant_note(self, boundary_table):
        pf = describe_frequency("rsBELOW", Population.GLOBAL, boundary_table)

        assert pf.rare
        assert pf.population_note.startswith("Rare variant in Global Average population (1.0% frequency)")

    def test_no_data(self):
        pf = describe_frequency("rs0", Population.SOUTH_ASIAN)

        assert pf.frequency is None
        assert pf.rare is False
        assert pf.population_note == NO_DATA_NOTE

    def test_context_per_variant(self):
        content = build_vcf(
            vcf_line(rsid="rs3892097"),
            vcf_line(rsid=".", info="GENE=CYP2D6;STAR=*4"),
        )
        context = get_population_context(parse_vcf(content).variants, Population.GLOBAL)

        assert [c.rsid for c in context] == ["rs3892097", None]
        assert context[1].population_note == NO_DATA_NOTE


class TestInheritance:

    def test_homozygous(self):
        info = get_inheritance_info("1/1")

        assert info.zygosity == "Homozygous"
        assert "both parents" in info.message
        assert info.family_note

    def test_heterozygous(self):
        for genotype in ("0/1", "1|0", "1/2"):
            assert get_inheritance_info(genotype).zygosity == "Heterozygous"

    @pytest.mark.parametrize("genotype", ["0/0", "./.", "./1", "1", "", None])
    def test_no_inheritance_info(self, genotype):
        assert get_inheritance_info(genotype) is None
