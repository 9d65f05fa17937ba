from fastapi import APIRouter, Depends

from ...core.config import Settings
from ..deps import get_orchestrator, get_settings
from ..schemas import HealthResponse, ModelStatusResponse
from ...screening.orchestrator import ScreeningOrchestrator
from ...utils.dates import iso_utc
from ...screening.models import utcnow

router = APIRouter(tags=["misc"])

@router.get("/health", response_model=HealthResponse)
def health(settings: Settings = Depends(get_settings)):
    return HealthResponse(
        status="OK",
        timestamp=iso_utc(utcnow()),
        environment=settings.APP_ENV,
        apiKeyConfigured=bool(settings.ANTHROPIC_API_KEY),
    )

@router.get("/version")
def version(settings: Settings = Depends(get_settings)):
    return {"version": settings.API_VERSION}

@router.get("/model/status", response_model=ModelStatusResponse)
async def model_status(orchestrator: ScreeningOrchestrator = Depends(get_orchestrator)):
    ok = await orchestrator.gateway.ping()
    return ModelStatusResponse(
        success=ok,
        message="Model API connection successful" if ok else "Model API connection failed",
    )
