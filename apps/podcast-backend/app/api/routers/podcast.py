import logging
import uuid

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from app.api.schemas.podcast import ConversationStreamEvent, ErrorResponse, PodcastPreviewRequest
from app.core.errors import PaperLookupError, ProviderConfigurationError
from app.dependency_injection import get_container
from app.services.contracts import ConversationServiceProtocol

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/podcast", tags=["podcast"])

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _error_response(status_code: int, error: str, *, request_id: str, paper_id: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, paperId=paper_id, requestId=request_id)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers={"X-Request-ID": request_id},
    )


@router.post(
    "/preview",
    summary="Stream a live two-host conversation about a selected paper",
    description=(
        "Validates the paper before any bytes are streamed, then emits conversation_start, "
        "typing_start/typing_stop/message per turn and exactly one conversation_end or error event."
    ),
    responses={
        200: {"content": {"text/event-stream": {}}, "model": ConversationStreamEvent},
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def preview(
    payload: PodcastPreviewRequest,
    request: Request,
    x_request_id: str | None = Header(default=None),
):
    request_id = x_request_id or str(uuid.uuid4())
    paper_id = str(payload.paper_id)
    logger.info(
        "podcast preview request",
        extra={"request_id": request_id, "paper_id": paper_id, "episode": payload.episode},
    )

    try:
        conversation_service = get_container(request).resolve(ConversationServiceProtocol)
    except ProviderConfigurationError as exc:
        logger.error("turn source is not configured", extra={"request_id": request_id})
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc), request_id=request_id)

    try:
        session = await conversation_service.open_session(payload, request_id)
    except PaperLookupError as exc:
        logger.info("podcast preview rejected", extra={"request_id": request_id, "paper_id": paper_id, "reason": exc.message})
        return _error_response(status.HTTP_404_NOT_FOUND, exc.message, request_id=request_id, paper_id=exc.paper_id)

    return StreamingResponse(
        session.frames(),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, "X-Request-ID": request_id},
    )
