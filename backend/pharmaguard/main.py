import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pharmaguard import __version__
from pharmaguard.api.router import api_router
from pharmaguard.core import logging as _logging  # noqa: F401  Initialize logging
from pharmaguard.core.config import get_settings
from pharmaguard.services.pharmacogenomics.knowledge_base import get_knowledge_base

logger = logging.getLogger(__name__)

app = FastAPI(
    title=get_settings().app_name,
    description="Pharmacogenomic risk assessment from VCF files with population context and a patient-level safety index",
    version=__version__,
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API Routers
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    # Build the knowledge base and rsID index before serving requests
    kb = get_knowledge_base()
    logger.info("Knowledge base ready: %d drugs supported", len(kb.supported_drugs))


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "PharmaGuard"}
