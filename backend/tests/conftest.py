"""
Shared fixtures: VCF builders, a fixed clock and template-only explanations.
"""

from datetime import datetime, timezone

import pytest

from pharmaguard.core.config import get_settings
from pharmaguard.services.pharmacogenomics.config import reset_config
from pharmaguard.services.pharmacogenomics.knowledge_base import get_knowledge_base
from pharmaguard.services.pharmacogenomics.risk_engine import RiskEngine

HEADER = "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tSAMPLE1"

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def build_vcf(*data_lines, fileformat="##fileformat=VCFv4.2", header=HEADER):
    lines = [fileformat, "##source=unit-test", header]
    lines.extend(data_lines)
    return "\n".join(lines) + "\n"


def vcf_line(chrom="22", pos=42130692, rsid="rs3892097", ref="G", alt="A",
             qual="60", flt="PASS", info=".", gt="0/1", gq="99"):
    return "\t".join([chrom, str(pos), rsid, ref, alt, qual, flt, info, "GT:GQ", f"{gt}:{gq}"])


@pytest.fixture(autouse=True)
def template_explanations(monkeypatch):
    """Keep tests offline: no API key, template explanations only."""
    monkeypatch.setenv("EXPLANATION_PROVIDER", "template")
    monkeypatch.setenv("GROQ_API_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def default_scoring_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def kb():
    return get_knowledge_base()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def engine(kb, fixed_clock):
    return RiskEngine(knowledge_base=kb, clock=fixed_clock)


@pytest.fixture
def codeine_pm_vcf():
    """CYP2D6 *4 homozygous (rs3892097, 1/1)."""
    return build_vcf(vcf_line(rsid="rs3892097", gt="1/1", qual="60"))


@pytest.fixture
def no_pgx_vcf():
    """Valid file with one variant that matches no pharmacogene."""
    return build_vcf(vcf_line(chrom="1", pos=1000, rsid="rs999999", ref="A", alt="T"))
