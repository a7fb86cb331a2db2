from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConfidenceDetails(BaseModel):
    score: float
    avg_quality: int = 0
    variant_count: int = 0
    star_allele_count: int = 0
    has_homozygous: bool = False
    level: str


class RiskAssessment(BaseModel):
    risk_label: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    confidence_details: Optional[ConfidenceDetails] = None
    severity: str


class InheritanceInfo(BaseModel):
    zygosity: str
    inherited: bool = True
    message: str
    family_note: str


class PopulationFrequency(BaseModel):
    rsid: Optional[str] = None
    frequency: Optional[float] = None
    frequency_percent: Optional[str] = None
    rare: bool = False
    ancestry: Optional[str] = None
    population_note: str


class DetectedVariant(BaseModel):
    rsid: str
    chromosome: str
    position: int
    ref_allele: str
    alt_allele: str
    genotype: str
    quality_score: Optional[float] = None
    gene: str
    star_allele: Optional[str] = None
    functional_impact: str
    annotation_source: str
    inheritance: Optional[InheritanceInfo] = None
    population_freq: Optional[PopulationFrequency] = None


class PharmacogenomicProfile(BaseModel):
    primary_gene: str
    diplotype: str
    phenotype: str
    detected_variants: List[DetectedVariant] = Field(default_factory=list)
    activity_score: Optional[float] = None


class ClinicalRecommendation(BaseModel):
    action: str
    dosing_guideline: str
    monitoring: str
    alternatives: List[str] = Field(default_factory=list)
    cpic_guideline_reference: str


class LLMExplanation(BaseModel):
    summary: str
    mechanism: Optional[str] = None
    clinical_significance: Optional[str] = None
    variant_citations: Optional[str] = None
    confidence_explanation: Optional[str] = None
    evidence_level: Optional[str] = None
    citations: List[str] = Field(default_factory=list)
    model_used: Optional[str] = None
    generated_at: Optional[str] = None


class QualityMetrics(BaseModel):
    vcf_parsing_success: bool = True
    variants_detected: int = 0
    gene_coverage: str
    analysis_version: str
    cpic_version: Optional[str] = None
    total_variants_in_file: Optional[int] = None
    pgx_variants_detected: Optional[int] = None
    parse_warnings: List[str] = Field(default_factory=list)
    vcf_version: Optional[str] = None


class RareVariantWarning(BaseModel):
    rsid: str
    gene: str
    frequency: Optional[float] = None
    message: str
    population_note: Optional[str] = None


class PopulationContext(BaseModel):
    ancestry: str
    applied: bool = True


class SimulationInfo(BaseModel):
    type: str = "dose_change"
    dose_percent: int
    original_label: str
    original_confidence: Optional[float] = None
    disclaimer: str


class RiskResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: str
    drug: str
    timestamp: str
    risk_assessment: RiskAssessment
    pharmacogenomic_profile: PharmacogenomicProfile
    clinical_recommendation: ClinicalRecommendation
    llm_generated_explanation: LLMExplanation
    quality_metrics: QualityMetrics
    rare_variant_warnings: List[RareVariantWarning] = Field(default_factory=list)
    population_context: Optional[PopulationContext] = None
    simulated: Optional[bool] = Field(None, alias="_simulated")
    simulation: Optional[SimulationInfo] = Field(None, alias="_simulation")

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v):
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
            return v
        except ValueError:
            raise ValueError("Timestamp must be a valid ISO 8601 string")


class SafetyBreakdownItem(BaseModel):
    drug: str
    risk_label: str
    penalty: int
    reasons: List[str] = Field(default_factory=list)


class SafetyIndexResult(BaseModel):
    score: int = Field(..., ge=0, le=100)
    level: str
    color: str
    breakdown: List[SafetyBreakdownItem] = Field(default_factory=list)


class AnalysisMetadata(BaseModel):
    total_variants: int = 0
    pgx_variants: int = 0
    drugs_analyzed: int = 0
    parse_errors: List[str] = Field(default_factory=list)


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: List[RiskResult]
    result: Optional[RiskResult] = None
    safety_index: SafetyIndexResult
    ancestry: str
    metadata: AnalysisMetadata


class SimulationRequest(BaseModel):
    result: RiskResult
    dose_percent: int = Field(..., ge=0, le=100, description="Hypothetical dose as a percentage of standard")


class AnalyzeServiceInfo(BaseModel):
    service: str
    version: str
    status: str = "operational"
    supported_drugs: List[str]
    ancestry_options: List[Dict[str, Any]]
    features: List[str] = Field(default_factory=list)
