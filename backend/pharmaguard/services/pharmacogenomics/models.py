"""
Internal data models for pharmacogenomics service.
These models represent the curated reference data (genes, star alleles, drug
risk tables) and the intermediate diplotype call passed between the resolver
and the risk engine.
"""

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Phenotype codes each scale can produce
METABOLIZER_SCALE = "metabolizer"
TRANSPORTER_SCALE = "transporter"

SCALE_PHENOTYPES: Dict[str, Tuple[str, ...]] = {
    METABOLIZER_SCALE: ("URM", "RM", "NM", "IM", "PM"),
    TRANSPORTER_SCALE: ("NF", "DF", "PF"),
}

# Phenotype assigned to the reference/reference pairing on each scale
SCALE_REFERENCE_PHENOTYPE: Dict[str, str] = {
    METABOLIZER_SCALE: "NM",
    TRANSPORTER_SCALE: "NF",
}

# Labels a drug table may assign; "Unknown" is reserved for engine fallbacks
TABLE_RISK_LABELS = ("Safe", "Adjust Dosage", "Toxic", "Ineffective")
SEVERITIES = ("none", "low", "moderate", "high", "critical")


class StarAlleleDefinition(BaseModel):
    """Definition of a single star allele."""
    model_config = ConfigDict(frozen=True)

    rsids: Tuple[str, ...] = Field(default_factory=tuple, description="Defining reference SNP IDs")
    function: str = Field(..., description="Functional classification (Normal, Decreased, No function, ...)")
    activity_score: float = Field(..., ge=0.0, description="Activity score contributed by one copy")


class GeneDefinition(BaseModel):
    """A curated pharmacogene."""
    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Gene symbol (e.g., CYP2D6)")
    chromosome: str = Field(..., description="Chromosome label")
    description: str = Field("", description="Free-text description")
    reference_allele: str = Field("*1", description="Reference-like allele used for wild type")
    phenotype_scale: str = Field(METABOLIZER_SCALE, description="metabolizer or transporter")
    star_alleles: Dict[str, StarAlleleDefinition] = Field(default_factory=dict)

    @property
    def phenotype_codes(self) -> Tuple[str, ...]:
        return SCALE_PHENOTYPES[self.phenotype_scale]


class PhenotypeRisk(BaseModel):
    """Risk entry for one drug/phenotype combination."""
    model_config = ConfigDict(frozen=True)

    risk_label: str = Field(..., description="Safe, Adjust Dosage, Toxic or Ineffective")
    severity: str = Field(..., description="none, low, moderate, high or critical")
    explanation: str
    recommendation: str
    dosing_guideline: str

    @field_validator("risk_label")
    @classmethod
    def validate_risk_label(cls, v):
        if v not in TABLE_RISK_LABELS:
            raise ValueError(f"risk_label must be one of {TABLE_RISK_LABELS}")
        return v

    @field_validator("severity")
    @classmethod
    def validate_severity(cls, v):
        if v not in SEVERITIES:
            raise ValueError(f"severity must be one of {SEVERITIES}")
        return v


class DrugProfile(BaseModel):
    """Drug -> primary gene -> phenotype -> risk table."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Canonical uppercase drug name")
    gene: str = Field(..., description="Primary gene symbol")
    description: str = ""
    mechanism: str = ""
    alternatives: Tuple[str, ...] = Field(default_factory=tuple)
    phenotype_risk_map: Dict[str, PhenotypeRisk] = Field(default_factory=dict)


class RsidMatch(BaseModel):
    """One entry of the reverse rsID index."""
    model_config = ConfigDict(frozen=True)

    gene: str
    star_allele: str
    function: str
    activity_score: float


class DiplotypeCall(BaseModel):
    """Result of diplotype resolution for one gene."""
    gene: str = Field(..., description="Gene symbol")
    diplotype: str = Field(..., description="Diplotype (e.g., *1/*4)")
    allele1: str
    allele2: str
    detected_star_alleles: List[str] = Field(default_factory=list, description="Star alleles in encounter order")
    activity_score: float = Field(..., ge=0.0)
    phenotype: str = Field(..., description="Phenotype code (e.g., PM, NF)")
