from fastapi import APIRouter

from app.api.v1.routes import diagrams, health

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(diagrams.router, prefix="/diagrams", tags=["diagrams"])
