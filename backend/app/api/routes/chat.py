import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

from app.api.dependencies import get_chat_relay, get_provider_registry
from app.providers.registry import ProviderRegistry
from app.schemas.chat import ChatRequest, ErrorResponse
from app.services.chat_relay import ChatRelayService

router = APIRouter()
logger = logging.getLogger(__name__)

INVALID_MESSAGE_ERROR = "Invalid message format"
APOLOGY_TEXT = "Sorry, I encountered an error. Please try again."
STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


async def parse_chat_request(request: Request) -> ChatRequest | None:
    try:
        data = await request.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return ChatRequest.model_validate(data)
    except ValidationError:
        return None


@router.post(
    "/chat",
    response_class=StreamingResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
async def post_chat(
    request: Request,
    relay: ChatRelayService = Depends(get_chat_relay),
    providers: ProviderRegistry = Depends(get_provider_registry),
) -> Response:
    body = await parse_chat_request(request)
    if body is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error=INVALID_MESSAGE_ERROR).model_dump(),
        )

    try:
        stream = await relay.open_stream(body)
    except Exception:  # noqa: BLE001
        logger.exception("Chat relay failed before streaming", extra={"event": "chat_error"})
        return PlainTextResponse(APOLOGY_TEXT)

    headers = {
        "Cache-Control": "no-cache",
        "X-Provider-Config": providers.config.llm.provider,
    }
    background = BackgroundTask(stream.close) if stream.close is not None else None
    return StreamingResponse(
        stream.chunks,
        media_type=STREAM_MEDIA_TYPE,
        headers=headers,
        background=background,
    )
