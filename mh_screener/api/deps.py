from fastapi import Request

from ..core.config import Settings
from ..screening.orchestrator import ScreeningOrchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> ScreeningOrchestrator:
    return request.app.state.orchestrator
