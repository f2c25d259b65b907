"""Health check endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel

from perimeter.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health():
    settings = get_settings()
    return HealthResponse(status="healthy", version=settings.app_version)
