"""
Error taxonomy for the analysis service.

Every error the API surfaces carries a machine-readable code and an HTTP status.
Unsupported drugs and unavailable explanation services are NOT errors: they are
handled as normal outcomes inside the pipeline.
"""

from typing import Any, Dict, Optional


class PharmaGuardError(Exception):
    error_code = "PHARMAGUARD_ERROR"
    status_code = 400
    quality_metrics: Optional[Dict[str, Any]] = None

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or message

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "error_code": self.error_code,
            "error": self.message,
            "details": self.details,
        }
        if self.quality_metrics is not None:
            body["quality_metrics"] = dict(self.quality_metrics)
        return body


class InputValidationError(PharmaGuardError):
    """Missing, oversized or wrong-type input."""
    error_code = "INVALID_INPUT"


class MissingFileError(InputValidationError):
    error_code = "MISSING_FILE"


class MissingDrugError(InputValidationError):
    error_code = "MISSING_DRUG"


class VcfFormatError(PharmaGuardError):
    """File does not start with the ##fileformat=VCF declaration."""
    error_code = "INVALID_FILE_FORMAT"
    quality_metrics = {"vcf_parsing_success": False}


class VcfParseError(PharmaGuardError):
    """Data lines were malformed and no usable variant survived parsing."""
    error_code = "VCF_PARSE_FAILED"
    quality_metrics = {"vcf_parsing_success": False}

    def __init__(self, message: str, details: Optional[str] = None, parse_errors=None):
        super().__init__(message, details)
        self.parse_errors = list(parse_errors or [])


class InternalAnalysisError(PharmaGuardError):
    error_code = "INTERNAL_ERROR"
    status_code = 500
