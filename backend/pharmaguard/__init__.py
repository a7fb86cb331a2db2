"""
PharmaGuard - pharmacogenomic risk assessment service.

VCF parsing, diplotype/phenotype inference, CPIC-aligned drug risk lookup,
population context and patient-level safety scoring.
"""

__version__ = "1.0.0"
