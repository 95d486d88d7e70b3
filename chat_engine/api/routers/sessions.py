"""Chat session API endpoints.

Routes:
- GET /chat/sessions - List the caller's sessions
- GET /chat/sessions/{session_id} - Get one session with its conversation
- DELETE /chat/sessions/{session_id} - Delete a session

Dependencies: chat_engine.application.services.session_service
System role: Session management HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from chat_engine.api.deps import get_current_owner, get_session_service
from chat_engine.api.routers.error_handling import handle_chat_errors
from chat_engine.application.services.session_service import SessionService
from chat_engine.models.chat import ApiResponse
from chat_engine.models.session import (
    DeleteSessionResponse,
    SessionDetailResponse,
    SessionListResponse,
)

router = APIRouter(prefix="/chat/sessions", tags=["sessions"])


@router.get("", response_model=ApiResponse[SessionListResponse])
@handle_chat_errors
async def list_sessions(
    limit: int = Query(default=20, description="Page size (clamped to 1..100)"),
    offset: int = Query(default=0, description="Number of sessions to skip"),
    status: str | None = Query(default=None, description="Filter by status"),
    source: str | None = Query(default=None, description="Filter by source (chat, ping)"),
    owner: str = Depends(get_current_owner),
    service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionListResponse]:
    """List the caller's sessions, most recently active first."""
    result = await service.list_sessions(
        owner,
        limit=limit,
        offset=offset,
        status=status or None,
        source=source or None,
    )
    return ApiResponse(data=result)


@router.get("/{session_id}", response_model=ApiResponse[SessionDetailResponse])
@handle_chat_errors
async def get_session(
    session_id: UUID,
    owner: str = Depends(get_current_owner),
    service: SessionService = Depends(get_session_service),
) -> ApiResponse[SessionDetailResponse]:
    """Get a session's conversation and metadata.

    Raises:
        HTTPException(403): Session belongs to another user
        HTTPException(404): Session not found
    """
    result = await service.get_session(session_id, owner)
    return ApiResponse(data=result)


@router.delete("/{session_id}", response_model=ApiResponse[DeleteSessionResponse])
@handle_chat_errors
async def delete_session(
    session_id: UUID,
    owner: str = Depends(get_current_owner),
    service: SessionService = Depends(get_session_service),
) -> ApiResponse[DeleteSessionResponse]:
    """Delete a session."""
    result = await service.delete_session(session_id, owner)
    return ApiResponse(data=result)
