from fastapi import APIRouter, Depends

from ..deps import get_orchestrator
from ..schemas import LegacyScreeningRequest, LegacyScreeningResponse
from ...screening.orchestrator import ScreeningOrchestrator

router = APIRouter(tags=["legacy"])

@router.post("/submit-screening", response_model=LegacyScreeningResponse, response_model_exclude_none=True)
async def submit_screening_legacy(payload: LegacyScreeningRequest, orchestrator: ScreeningOrchestrator = Depends(get_orchestrator)):
    result = await orchestrator.legacy_submit(payload.responses, payload.conversationHistory)
    return LegacyScreeningResponse(
        analysis=result.analysis,
        usingFallback=result.using_fallback,
        followUpQuestions=result.follow_up_questions,
        conversationComplete=result.conversation_complete,
        conversationHistory=result.history,
    )
