from fastapi import APIRouter
from fainatic.api.v1.endpoints import analysis, files

api_router = APIRouter()

api_router.include_router(files.router, prefix="/files", tags=["files"])
api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
