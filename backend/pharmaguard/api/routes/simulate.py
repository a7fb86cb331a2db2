from fastapi import APIRouter
import logging

from pharmaguard.api.routes.analysis import internal_error
from pharmaguard.schemas.pharma_schema import RiskResult, SimulationRequest
from pharmaguard.services.pharmacogenomics.what_if import simulate_dose_change

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/simulate", response_model=RiskResult)
async def simulate_dose(req: SimulationRequest) -> RiskResult:
    """
    What-if preview of a risk result at a hypothetical dose.

    The returned result is tagged ``_simulated`` and is not a prescription.
    """
    try:
        return simulate_dose_change(req.result, req.dose_percent)
    except Exception as e:
        logger.exception(f"Unexpected error in dose simulation: {str(e)}")
        raise internal_error()
