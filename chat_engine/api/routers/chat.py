"""Chat API endpoints.

Routes:
- POST /chat - Send a message (one model call; tools left pending for continue)
- POST /chat/continue - Resolve pending tool calls and call the model again
- POST /chat/ping - Externally triggered run to completion (bearer token)

Dependencies: chat_engine.application.services.session_orchestrator
System role: Chat messaging HTTP API
"""

import json
import logging

from fastapi import APIRouter, Depends, Header

from chat_engine.api.deps import (
    get_current_owner,
    get_session_orchestrator,
    verify_ping_token,
)
from chat_engine.api.routers.error_handling import handle_chat_errors
from chat_engine.application.services.session_orchestrator import (
    NewMessageOptions,
    SessionOrchestrator,
)
from chat_engine.models.chat import (
    ApiResponse,
    ChatRequest,
    ChatTurnResponse,
    ContinueRequest,
    ContinueResponse,
    PingRequest,
    PingResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ApiResponse[ChatTurnResponse])
@handle_chat_errors
async def chat(
    request: ChatRequest,
    owner: str = Depends(get_current_owner),
    x_request_id: str | None = Header(default=None, alias="X-Request-ID"),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator),
) -> ApiResponse[ChatTurnResponse]:
    """Send a chat message.

    Flow:
    1. Replay the cached response if X-Request-ID was seen in the last minute
    2. Resolve the session (explicit id, recent pending session, or new)
    3. Persist the message, run one model call, persist the result

    Args:
        request: ChatRequest with message and optional provider/model/session/context
        owner: Requesting principal (X-User-ID)
        x_request_id: Optional idempotency key
        orchestrator: Injected SessionOrchestrator

    Returns:
        ApiResponse[ChatTurnResponse]: Turn outcome and full conversation

    Raises:
        HTTPException(400): Provider or model not configured
        HTTPException(403): Session belongs to another user
        HTTPException(404): Session not found
        HTTPException(502): AI provider failure
    """
    response = await orchestrator.process_new_message(
        message=request.message,
        provider=request.provider,
        model=request.model,
        owner=owner,
        options=NewMessageOptions(
            session_id=request.session_id,
            selected_context=request.selected_context,
            request_id=x_request_id,
        ),
    )
    return ApiResponse(data=response)


@router.post("/continue", response_model=ApiResponse[ContinueResponse])
@handle_chat_errors
async def continue_chat(
    request: ContinueRequest,
    owner: str = Depends(get_current_owner),
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator),
) -> ApiResponse[ContinueResponse]:
    """Continue a session that has pending tool calls.

    Returns only the messages appended by this call.
    """
    response = await orchestrator.process_continue(request.session_id, owner)
    return ApiResponse(data=response)


@router.post(
    "/ping",
    response_model=ApiResponse[PingResponse],
    dependencies=[Depends(verify_ping_token)],
)
@handle_chat_errors
async def ping(
    request: PingRequest,
    orchestrator: SessionOrchestrator = Depends(get_session_orchestrator),
) -> ApiResponse[PingResponse]:
    """Run an externally triggered session to completion."""
    logger.info(f"{__name__}:ping - START message_len={len(request.message)}")
    response = await orchestrator.process_ping(build_ping_message(request))
    return ApiResponse(data=response)


def build_ping_message(request: PingRequest) -> str:
    """Combine prompt, message and optional context into one user message."""
    message = request.message
    if request.prompt:
        message = f"{request.prompt}\n\n{message}"
    if request.context:
        message += "\n\n**Pipeline Context:**\n```json\n" + json.dumps(request.context, indent=2) + "\n```"
    return message
