"""
Conversation endpoints - drive the guided incident intake over HTTP.

A rejected answer is not an HTTP error: the response carries
accepted=false, the reason, and the same prompt again.
"""

from typing import Optional
import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from app.core.exceptions import PersistenceError
from app.models.conversation import Prompt, StepResult
from app.models.report import CriticalAreaCheck, Location, Report
from app.services.conversation_engine import ConversationEngine
from app.services.conversation_sessions import get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


class StartConversationRequest(BaseModel):
    user_id: Optional[str] = Field(None, description="Signed-in account, if any")


class AnswerRequest(BaseModel):
    answer: str = Field("", max_length=2000, description="Raw text answer; trimmed server-side")


class ConversationTurnResponse(BaseModel):
    conversation_id: str
    step: int
    accepted: bool = True
    error: Optional[str] = None
    prompt: Prompt
    complete: bool = False
    report: Optional[Report] = None
    critical_area: Optional[CriticalAreaCheck] = None
    escalation_error: Optional[str] = None


def _turn(conversation_id: str, engine: ConversationEngine, result: Optional[StepResult] = None) -> ConversationTurnResponse:
    response = ConversationTurnResponse(
        conversation_id=conversation_id,
        step=int(engine.state.step),
        prompt=engine.prompt,
        complete=engine.is_complete,
    )
    if result is not None:
        response.accepted = result.accepted
        response.error = result.error
        outcome = result.submission
        if outcome is not None:
            response.report = outcome.report
            response.critical_area = outcome.critical_area
            response.escalation_error = outcome.escalation_error
    return response


def _get_engine(conversation_id: str) -> ConversationEngine:
    engine = get_session_registry().get(conversation_id)
    if engine is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return engine


async def _run(conversation_id: str, engine: ConversationEngine, step) -> ConversationTurnResponse:
    try:
        result = await step
    except PersistenceError as e:
        logger.error(f"Conversation {conversation_id}: report submission failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Your report could not be saved. Please try again."
        )

    if result.accepted and engine.submitted:
        get_session_registry().finish(conversation_id)
    return _turn(conversation_id, engine, result)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ConversationTurnResponse)
async def start_conversation(request: Optional[StartConversationRequest] = None):
    """Start a new intake session and return Billy's greeting."""
    conversation_id, engine = get_session_registry().start(user_id=request.user_id if request else None)
    return _turn(conversation_id, engine)


@router.post("/{conversation_id}/answers", response_model=ConversationTurnResponse)
async def answer(conversation_id: str, request: AnswerRequest):
    """Feed one text answer to the session."""
    engine = _get_engine(conversation_id)
    return await _run(conversation_id, engine, engine.handle_answer(request.answer))


@router.post("/{conversation_id}/location", response_model=ConversationTurnResponse)
async def select_location(conversation_id: str, location: Location):
    """Out-of-band map selection."""
    engine = _get_engine(conversation_id)
    return await _run(conversation_id, engine, engine.select_location(location))


@router.post("/{conversation_id}/retry", response_model=ConversationTurnResponse)
async def retry_submission(conversation_id: str):
    """Resend a finalized report whose previous submission failed."""
    engine = _get_engine(conversation_id)
    return await _run(conversation_id, engine, engine.retry_submission())


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_conversation(conversation_id: str):
    if not get_session_registry().finish(conversation_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
