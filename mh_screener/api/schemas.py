from pydantic import BaseModel
from typing import Optional, Dict, Any, List

from ..screening.models import AnalysisResult, ConversationTurn

# ``responses`` is left untyped so a missing or malformed payload reaches the
# orchestrator and is rejected there as a 400, not a framework 422.

class ScreeningRequest(BaseModel):
    sessionId: Optional[str] = None
    responses: Any = None

class ScreeningResponse(BaseModel):
    success: bool = True
    sessionId: str
    analysis: AnalysisResult
    followUpQuestions: List[str]
    isComplete: bool
    usingFallback: bool

class SessionStatusResponse(BaseModel):
    success: bool = True
    sessionId: str
    isComplete: bool
    lastUpdated: str

class LegacyScreeningRequest(BaseModel):
    responses: Any = None
    conversationHistory: Optional[Any] = None

class LegacyScreeningResponse(BaseModel):
    success: bool = True
    analysis: AnalysisResult
    usingFallback: bool
    followUpQuestions: Optional[List[str]] = None
    conversationComplete: Optional[bool] = None
    conversationHistory: Optional[List[ConversationTurn]] = None

class ModelStatusResponse(BaseModel):
    success: bool
    message: str

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    apiKeyConfigured: bool
