from typing import Dict

from fastapi import APIRouter, HTTPException, status

from pharmaguard.services.pharmacogenomics.population_data import ANCESTRY_OPTIONS, get_all_frequencies

router = APIRouter()


@router.get("/ancestries")
async def list_ancestries():
    """Ancestry groups accepted by the analysis endpoint."""
    return {"ancestry_options": ANCESTRY_OPTIONS}


@router.get("/frequencies/{rsid}")
async def rsid_frequencies(rsid: str) -> Dict[str, object]:
    """Allele frequencies of one rsID across all ancestry groups."""
    freqs = get_all_frequencies(rsid)
    if freqs is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error_code": "NOT_FOUND",
                "error": "No population frequency data",
                "details": f"No population frequency data available for {rsid}",
            },
        )
    return {"rsid": rsid, "frequencies": freqs}
