"""
Pharmacogenomics Service

CPIC-aligned pharmacogenomic decision engine for drug risk assessment.
Provides deterministic, rule-based diplotype resolution, risk lookup,
population context and patient-level safety scoring.
"""

from .models import (
    StarAlleleDefinition,
    GeneDefinition,
    PhenotypeRisk,
    DrugProfile,
    RsidMatch,
    DiplotypeCall,
)
from .knowledge_base import KnowledgeBase, get_knowledge_base, reload_knowledge_base
from .phenotype_mapper import DiplotypeResolver, determine_phenotype, is_homozygous
from .confidence import ConfidenceBreakdown, calculate_confidence, confidence_level
from .risk_engine import RiskEngine, create_risk_engine
from .config import (
    get_config,
    update_config,
    reset_config,
    load_config_from_file,
    save_config_to_file,
)
from .population_data import (
    ANCESTRY_OPTIONS,
    Population,
    get_all_frequencies,
    get_inheritance_info,
    get_population_context,
    is_rare_variant,
)
from .safety_index import compute_safety_index
from .what_if import simulate_dose_change

__all__ = [
    # Models
    'StarAlleleDefinition',
    'GeneDefinition',
    'PhenotypeRisk',
    'DrugProfile',
    'RsidMatch',
    'DiplotypeCall',

    # Knowledge base
    'KnowledgeBase',
    'get_knowledge_base',
    'reload_knowledge_base',

    # Phenotype Mapping
    'DiplotypeResolver',
    'determine_phenotype',
    'is_homozygous',

    # Confidence
    'ConfidenceBreakdown',
    'calculate_confidence',
    'confidence_level',

    # Risk Engine
    'RiskEngine',
    'create_risk_engine',

    # Population
    'ANCESTRY_OPTIONS',
    'Population',
    'get_all_frequencies',
    'get_inheritance_info',
    'get_population_context',
    'is_rare_variant',

    # Aggregation / simulation
    'compute_safety_index',
    'simulate_dose_change',
]
