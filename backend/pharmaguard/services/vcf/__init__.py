from .parser import (
    PgxAnnotation,
    VariantRecord,
    VcfMetadata,
    VcfParseResult,
    VcfValidation,
    parse_vcf,
    validate_vcf,
)

__all__ = [
    "PgxAnnotation",
    "VariantRecord",
    "VcfMetadata",
    "VcfParseResult",
    "VcfValidation",
    "parse_vcf",
    "validate_vcf",
]
