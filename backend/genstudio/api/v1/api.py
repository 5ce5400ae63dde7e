from fastapi import APIRouter

from genstudio.api.v1.endpoints import generations

api_router = APIRouter()

api_router.include_router(generations.router, prefix="/generations", tags=["generations"])
