"""
Configuration for pharmacogenomics service.
Centralizes tunable parameters for confidence scoring, safety index penalties
and population-aware adjustments.
"""

import json

from pydantic import BaseModel, Field


class ConfidenceWeights(BaseModel):
    """Additive components of the risk confidence score."""

    base: float = Field(default=0.35, ge=0.0, le=1.0, description="Starting confidence before any evidence")

    per_variant: float = Field(default=0.10, ge=0.0, description="Bonus per detected gene variant")
    max_variant_bonus: float = Field(default=0.20, ge=0.0, description="Cap on the per-variant bonus")

    single_star_allele: float = Field(default=0.10, ge=0.0, description="Bonus when exactly one star allele is called")
    multiple_star_alleles: float = Field(default=0.15, ge=0.0, description="Bonus when two or more star alleles are called")

    max_quality_bonus: float = Field(
        default=0.15,
        ge=0.0,
        description="Maximum bonus from average QUAL (scaled by avg QUAL / 100, capped at 1.0)"
    )

    homozygous_bonus: float = Field(default=0.05, ge=0.0, description="Bonus when any contributing variant is homozygous")

    high_quality_threshold: float = Field(default=50.0, ge=0.0, description="Average QUAL above which the bonus applies")
    high_quality_bonus: float = Field(default=0.05, ge=0.0, description="Bonus for high average QUAL")

    max_confidence: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Upper cap: confidence is never reported as certain"
    )

    # Fallback scores when the phenotype has no mapping for the drug
    unmapped_with_variants: float = Field(default=0.4, ge=0.0, le=1.0)
    unmapped_without_variants: float = Field(default=0.1, ge=0.0, le=1.0)


class SafetyIndexPenalties(BaseModel):
    """Per-drug deductions applied to the 0-100 Genomic Drug Safety Index."""

    toxic_or_ineffective: int = Field(default=25, ge=0)
    adjust_dosage: int = Field(default=10, ge=0)
    critical_severity: int = Field(default=8, ge=0)
    high_severity: int = Field(default=5, ge=0)
    low_confidence: int = Field(default=4, ge=0)
    low_confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    no_variants: int = Field(default=3, ge=0)


class PopulationSettings(BaseModel):
    """Population-aware interpretation parameters."""

    rare_frequency_threshold: float = Field(
        default=0.01,
        gt=0.0,
        le=1.0,
        description="Variants strictly below this frequency are flagged rare"
    )

    rare_variant_confidence_penalty: float = Field(
        default=0.05,
        ge=0.0,
        description="Confidence deduction per rare variant in a result"
    )

    rare_variant_confidence_floor: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Rare-variant deductions never push confidence below this floor"
    )


class PharmacogenomicsConfig(BaseModel):
    """Main configuration for pharmacogenomics service."""

    confidence: ConfidenceWeights = Field(
        default_factory=ConfidenceWeights,
        description="Confidence scoring configuration"
    )

    safety_index: SafetyIndexPenalties = Field(
        default_factory=SafetyIndexPenalties,
        description="Safety index penalty configuration"
    )

    population: PopulationSettings = Field(
        default_factory=PopulationSettings,
        description="Population context configuration"
    )

    # Data paths
    knowledge_base_path: str = Field(
        default="data/knowledge_base.json",
        description="Path to the knowledge base JSON (relative to the pharmaguard package)"
    )


# Global configuration instance
_config: PharmacogenomicsConfig = PharmacogenomicsConfig()


def get_config() -> PharmacogenomicsConfig:
    """Get the global configuration instance."""
    return _config


def update_config(**kwargs) -> PharmacogenomicsConfig:
    """
    Update configuration parameters.

    Nested parameters use dotted keys, e.g.
    ``update_config(**{"safety_index.no_variants": 5})``.
    """
    global _config
    current_dict = _config.model_dump()

    for key, value in kwargs.items():
        if '.' in key:
            parts = key.split('.')
            current = current_dict
            for part in parts[:-1]:
                current = current[part]
            current[parts[-1]] = value
        else:
            current_dict[key] = value

    _config = PharmacogenomicsConfig(**current_dict)
    return _config


def reset_config() -> PharmacogenomicsConfig:
    """Restore the default configuration."""
    global _config
    _config = PharmacogenomicsConfig()
    return _config


def load_config_from_file(filepath: str) -> PharmacogenomicsConfig:
    """Load configuration from a JSON file."""
    global _config

    with open(filepath, 'r') as f:
        config_dict = json.load(f)

    _config = PharmacogenomicsConfig(**config_dict)
    return _config


def save_config_to_file(filepath: str):
    """Save current configuration to a JSON file."""
    with open(filepath, 'w') as f:
        json.dump(_config.model_dump(), f, indent=2)


# Convenience accessors
def get_confidence_weights() -> ConfidenceWeights:
    return _config.confidence


def get_safety_penalties() -> SafetyIndexPenalties:
    return _config.safety_index


def get_population_settings() -> PopulationSettings:
    return _config.population
