"""Voice questionnaire endpoints.

The controller only translates HTTP to orchestrator calls; session state,
retries and classification live in `app.services.orchestrator`.
"""

import logging

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.responses import Response

from app.config.settings import settings
from app.controllers.dependencies import OrchestratorDep
from app.services.orchestrator import ProcessingResult, ProcessingStatus
from app.views import (
    QuestionResponse,
    QuestionView,
    ResponseSubmissionResult,
    SessionStartResponse,
)

router = APIRouter(prefix="/api/questionnaire", tags=["questionnaire"])

logger = logging.getLogger(__name__)

_AUDIO_UPLOAD = File(...)
_RETRY_MESSAGE_QUERY = Query(..., min_length=1, max_length=1000)


def _audio_response(audio_bytes: bytes, filename: str) -> Response:
    return Response(
        content=audio_bytes,
        media_type="audio/mpeg",
        headers={"Content-Disposition": f"inline; filename={filename}"},
    )


def _to_view(result: ProcessingResult) -> ResponseSubmissionResult:
    return ResponseSubmissionResult(
        status=result.status.value,
        message=result.message,
        transcript=result.transcript,
        nextQuestion=QuestionView.from_question(result.next_question),
        completed=result.status == ProcessingStatus.COMPLETED,
        confidence=result.confidence,
        retryMessage=result.retry_message,
        retryCount=result.session.retry_count,
        isSuccessful=result.session.is_completed,
    )


@router.post("/start", response_model=SessionStartResponse)
async def start_session(orchestrator: OrchestratorDep) -> SessionStartResponse:
    """Create a new questionnaire session."""

    logger.info("Starting new questionnaire session")
    session_id = await orchestrator.start_session()
    return SessionStartResponse(
        sessionId=session_id,
        message="Session started successfully",
        expiresInSeconds=settings.session.timeout_minutes * 60,
    )


@router.get("/question/{session_id}", response_model=QuestionResponse)
async def get_current_question(session_id: str, orchestrator: OrchestratorDep) -> QuestionResponse:
    """Return the question the session is currently on."""

    total = len(orchestrator.catalog)
    question = await orchestrator.get_current_question(session_id)
    if question is None:
        return QuestionResponse(
            question=None,
            message="Questionnaire completed",
            completed=True,
            totalQuestions=total,
            currentQuestionNumber=total,
        )

    session = await orchestrator.get_session(session_id)
    return QuestionResponse(
        question=QuestionView.from_question(question),
        message="Current question retrieved",
        completed=False,
        totalQuestions=total,
        currentQuestionNumber=session.current_question_index + 1,
    )


@router.get("/question/{session_id}/audio", response_class=Response)
async def get_question_audio(session_id: str, orchestrator: OrchestratorDep) -> Response:
    """Speak the current question, or the closing message once finished."""

    audio_bytes = await orchestrator.get_question_audio(session_id)
    return _audio_response(audio_bytes, "question.mp3")


@router.get("/retry/{session_id}/audio", response_class=Response)
async def get_retry_audio(
    session_id: str,
    orchestrator: OrchestratorDep,
    message: str = _RETRY_MESSAGE_QUERY,
) -> Response:
    """Speak a retry prompt previously returned by a submission."""

    await orchestrator.get_session(session_id)
    audio_bytes = await orchestrator.get_retry_audio(message)
    return _audio_response(audio_bytes, "retry.mp3")


@router.post("/response/{session_id}", response_model=ResponseSubmissionResult)
async def submit_response(
    session_id: str,
    orchestrator: OrchestratorDep,
    audio: UploadFile = _AUDIO_UPLOAD,
) -> ResponseSubmissionResult:
    """Transcribe and classify a spoken answer to the current question."""

    audio_bytes = await audio.read()
    await audio.close()
    logger.info(
        "Processing voice response for session=%s (%s bytes)", session_id, len(audio_bytes)
    )
    result = await orchestrator.process_response(session_id, audio_bytes)
    return _to_view(result)


@router.get("/responses/{session_id}", response_model=dict[int, str])
async def get_session_responses(session_id: str, orchestrator: OrchestratorDep) -> dict[int, str]:
    """Return the accepted category per question id."""

    return await orchestrator.get_responses(session_id)


@router.delete("/session/{session_id}", status_code=204, response_class=Response)
async def end_session(session_id: str, orchestrator: OrchestratorDep) -> Response:
    """Discard a session before its TTL runs out."""

    await orchestrator.get_session(session_id)
    await orchestrator.end_session(session_id)
    return Response(status_code=204)
