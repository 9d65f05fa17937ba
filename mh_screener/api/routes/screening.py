from fastapi import APIRouter, Depends

from ..deps import get_orchestrator
from ..schemas import ScreeningRequest, ScreeningResponse, SessionStatusResponse
from ...screening.orchestrator import ScreeningOrchestrator
from ...utils.dates import iso_utc

router = APIRouter(prefix="/screening", tags=["screening"])

@router.post("", response_model=ScreeningResponse)
async def submit_screening(payload: ScreeningRequest, orchestrator: ScreeningOrchestrator = Depends(get_orchestrator)):
    result = await orchestrator.submit(payload.sessionId, payload.responses)
    outcome = result.outcome
    return ScreeningResponse(
        sessionId=result.session_id,
        analysis=outcome.analysis,
        followUpQuestions=outcome.follow_up_questions,
        isComplete=outcome.conversation_complete,
        usingFallback=outcome.using_fallback,
    )

@router.get("/{session_id}", response_model=SessionStatusResponse)
async def screening_status(session_id: str, orchestrator: ScreeningOrchestrator = Depends(get_orchestrator)):
    session = await orchestrator.status(session_id)
    return SessionStatusResponse(
        sessionId=session.id,
        isComplete=session.is_complete,
        lastUpdated=iso_utc(session.last_updated),
    )
