"""
HTTP routes: health, chat and history reset under /api.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import config
from .errors import GenerationFailedError, InvalidRequestError, NotReadyError
from .pipeline import RAGService, ServiceStatus
from .schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
)

logger = config.get_logger(__name__)

INVALID_MESSAGE = "Message is required"
NOT_READY_MESSAGE = "Service is still initializing. Please wait..."
GENERATION_FAILED_MESSAGE = "Failed to generate an answer. Please try again."
INTERNAL_ERROR_MESSAGE = "Internal server error"

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

router = APIRouter(prefix="/api", tags=["chat"])


def get_rag_service(request: Request) -> RAGService:
    """
    Dependency injection for the RAG service.
    Created once in create_app() and stored in app.state.
    """
    return request.app.state.rag_service


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@router.get("/health", response_model=HealthResponse)
def health(service: RAGService = Depends(get_rag_service)) -> HealthResponse:
    """Report readiness without waiting for initialization."""
    status = "ready" if service.status is ServiceStatus.READY else "initializing"
    return HealthResponse(status=status, error=service.error)


@router.post("/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
def chat(
    payload: Any = Body(default=None),
    service: RAGService = Depends(get_rag_service),
):
    """
    Answer a question about the documentation.

    Requests are rejected with 503 until the index is built; nothing is
    queued. A malformed body gets 400 without reaching the model.
    """
    if not service.is_ready:
        return error_response(503, NOT_READY_MESSAGE, initError=service.error)

    try:
        request = ChatRequest.model_validate(payload)
    except ValidationError:
        return error_response(400, INVALID_MESSAGE)

    logger.info("Received question: %s", request.message)
    try:
        response = ChatResponse.from_result(service.answer(request.message))
    except NotReadyError as e:
        return error_response(503, str(e), initError=service.error)
    except InvalidRequestError as e:
        return error_response(400, str(e))
    except GenerationFailedError:
        logger.exception("Error generating answer")
        return error_response(500, GENERATION_FAILED_MESSAGE)
    except Exception:
        logger.exception("Error processing chat request")
        return error_response(500, INTERNAL_ERROR_MESSAGE)

    return response


@router.post("/clear", response_model=MessageResponse, responses=ERROR_RESPONSES)
def clear(service: RAGService = Depends(get_rag_service)):
    """Forget the conversation history."""
    try:
        service.clear_history()
    except Exception:
        logger.exception("Error clearing history")
        return error_response(500, INTERNAL_ERROR_MESSAGE)
    return MessageResponse(message="Chat history cleared")
