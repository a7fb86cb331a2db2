from fastapi import APIRouter
from pharmaguard.api.routes import analysis, population, simulate

api_router = APIRouter()

api_router.include_router(analysis.router, tags=["Analysis"])
api_router.include_router(simulate.router, tags=["Simulation"])
api_router.include_router(population.router, prefix="/population", tags=["Population"])
