from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
import logging

from pharmaguard import __version__
from pharmaguard.core.config import get_settings
from pharmaguard.core.errors import (
    InputValidationError,
    InternalAnalysisError,
    MissingDrugError,
    MissingFileError,
    PharmaGuardError,
)
from pharmaguard.schemas.pharma_schema import AnalysisResponse, AnalyzeServiceInfo
from pharmaguard.services.pharmacogenomics.knowledge_base import get_knowledge_base
from pharmaguard.services.pharmacogenomics.population_data import ANCESTRY_OPTIONS
from pharmaguard.services.pipeline.analysis_pipeline import run_analysis_pipeline

router = APIRouter()
logger = logging.getLogger(__name__)

FEATURES = [
    "Pharmacogenomic Risk Assessment",
    "Genomic Drug Safety Index",
    "Population-Aware Interpretation",
    "Rare Variant Detection",
    "Family Inheritance Insights",
    "What-If Prescribing Simulator",
]


def internal_error() -> HTTPException:
    error = InternalAnalysisError(
        "Internal analysis error", details="An error occurred during the analysis pipeline."
    )
    return HTTPException(status_code=error.status_code, detail=error.to_dict())


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    status_code=status.HTTP_200_OK,
    summary="Analyze Pharmacogenomic Risk",
    description="Upload a VCF file and one or more comma-separated drug names to receive risk assessments and a safety index.",
)
async def analyze_pharmacogenomics(
    vcfFile: Optional[UploadFile] = File(None, description="Patient's VCF file containing genetic variants"),
    drugNames: Optional[str] = Form(None, description="Comma-separated drug names (e.g., CODEINE, WARFARIN)"),
    ancestry: Optional[str] = Form("global", description="Ancestry code for population context"),
) -> AnalysisResponse:
    """
    Endpoint to trigger the pharmacogenomic analysis pipeline.

    - **vcfFile**: Genetic data file (.vcf, at most MAX_UPLOAD_BYTES, 5 MB by default)
    - **drugNames**: Target drug names
    - **ancestry**: global, south_asian, east_asian, african, european or other
    """
    try:
        if vcfFile is None or not vcfFile.filename:
            raise MissingFileError("No VCF file provided", details="Please upload a valid .vcf file")
        if not drugNames or not drugNames.strip():
            raise MissingDrugError("No drug name provided", details="Please enter at least one drug name")
        if not vcfFile.filename.lower().endswith(".vcf"):
            raise InputValidationError(
                "Invalid file type", details="Invalid file format. Please upload a .vcf file."
            )

        content = await vcfFile.read()
        settings = get_settings()
        if len(content) > settings.max_upload_bytes:
            raise InputValidationError("VCF file too large", details=settings.upload_limit_message)

        return await run_analysis_pipeline(content, drugNames, ancestry or "global")

    except PharmaGuardError as e:
        logger.warning("Analysis rejected: %s (%s)", e.error_code, e.details)
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    except Exception as e:
        logger.exception(f"Unexpected error in analysis pipeline: {str(e)}")
        raise internal_error()


@router.get("/analyze", response_model=AnalyzeServiceInfo)
async def analyze_service_info() -> AnalyzeServiceInfo:
    """Service description, supported drugs and ancestry options."""
    return AnalyzeServiceInfo(
        service=get_settings().app_name,
        version=__version__,
        supported_drugs=get_knowledge_base().supported_drugs,
        ancestry_options=ANCESTRY_OPTIONS,
        features=FEATURES,
    )
