"""
Session orchestrator.

Entry point for the three interaction modes:
- new message: one model call per request, tools left pending for continue
- continue: resolve pending tools and call the model once more
- ping: run an externally triggered session to completion

Every mode persists the user input before the model is called, and writes
partial progress with ``status=error`` when a turn fails.

Dependencies: chat_engine.application.services, chat_engine.core.agentic_system
System role: Conversation use case orchestration
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from chat_engine.application.services.dedup_cache import DedupCache
from chat_engine.application.services.session_store import SessionStore
from chat_engine.boundary.db.base import utcnow
from chat_engine.configs.chat import ChatSettings
from chat_engine.core.agentic_system.provider.chat_provider import AIProvider
from chat_engine.core.agentic_system.tools.registry import ToolContext, ToolRegistry
from chat_engine.core.agentic_system.turn_executor import TurnExecutor, TurnResult
from chat_engine.core.exceptions import (
    ConfigurationMissingError,
    SessionAccessDeniedError,
    SessionNotFoundError,
    SessionPersistenceError,
)
from chat_engine.models.chat import ChatTurnResponse, ContinueResponse, PingResponse
from chat_engine.models.message import (
    ChatMessage,
    MessageRole,
    close_unresolved_tool_calls,
    rounds_since_last_user,
    unresolved_tool_calls,
)
from chat_engine.models.session import ChatSession, SessionSource, SessionStatus
from chat_engine.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

TitleDispatcher = Callable[[UUID], None]

SUPERSEDED_TOOL_CALL = "superseded by new user message"


@dataclass
class NewMessageOptions:
    """Optional inputs of a new-message call."""

    session_id: UUID | None = None
    selected_context: dict[str, Any] | None = None
    max_turns: int | None = None
    request_id: str | None = None


class SessionOrchestrator:
    """Coordinates store, dedup cache, tool registry and turn executor."""

    def __init__(
        self,
        store: SessionStore,
        registry: ToolRegistry,
        provider: AIProvider,
        dedup: DedupCache | None = None,
        settings: ChatSettings | None = None,
        title_dispatcher: TitleDispatcher | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            store: Session persistence
            registry: Tool assembly and dispatch
            provider: AI provider used by the turn executor
            dedup: Request-key cache and pending-session lookup (None disables both)
            settings: Chat settings (defaults, budgets, ping owner)
            title_dispatcher: Called with a session id to title it in the background

        Raises:
            ValueError: If store, registry or provider is missing
        """
        if store is None:
            raise ValueError("SessionOrchestrator requires a SessionStore")
        if registry is None:
            raise ValueError("SessionOrchestrator requires a ToolRegistry")
        if provider is None:
            raise ValueError("SessionOrchestrator requires an AI provider")

        self.store = store
        self.registry = registry
        self.dedup = dedup
        self.settings = settings or ChatSettings()
        self.executor = TurnExecutor(registry, provider)
        self._title_dispatcher = title_dispatcher

    async def process_new_message(
        self,
        message: str,
        provider: str | None,
        model: str | None,
        owner: str,
        options: NewMessageOptions | None = None,
    ) -> ChatTurnResponse:
        """
        Handle one interactive message.

        Args:
            message: User message text
            provider: Requested provider (None for the configured default)
            model: Requested model (None for the configured default)
            owner: Verified requesting principal
            options: Session id, selected context, turn budget, request key

        Returns:
            ChatTurnResponse: Cached response on replay, otherwise the turn outcome

        Raises:
            SessionNotFoundError: If options.session_id does not exist
            SessionAccessDeniedError: If the session belongs to someone else
            ConfigurationMissingError: If provider or model cannot be resolved
            TurnFailureError: If the turn failed (session persisted with status=error)
        """
        options = options or NewMessageOptions()
        request_id = options.request_id or None

        if request_id and self.dedup is not None:
            cached = await self.dedup.get_response(request_id)
            if cached is not None:
                logger.info(f"{__name__}:process_new_message - replaying request_id={request_id}")
                return ChatTurnResponse.model_validate(cached)

        session: ChatSession | None
        if options.session_id is not None:
            session = await self._load_owned(options.session_id, owner)
        elif self.dedup is not None:
            session = await self.dedup.recent_pending(owner, SessionSource.CHAT.value)
            if session is not None:
                logger.info(f"{__name__}:process_new_message - reusing pending session_id={session.id}")
        else:
            session = None

        provider, model = self._resolve_provider(provider, model, session)
        max_turns = options.max_turns or self._session_max_turns(session)

        if session is None:
            session = await self._create_session(owner, SessionSource.CHAT, provider, model)

        # A new message supersedes tool calls still awaiting continue
        history = close_unresolved_tool_calls(session.messages, SUPERSEDED_TOOL_CALL)
        messages = [*history, ChatMessage.user(message)]
        patch: dict[str, Any] = {
            "status": SessionStatus.PROCESSING,
            "provider": provider,
            "model": model,
            "has_pending_tools": bool(unresolved_tool_calls(messages)),
            "last_activity_at": utcnow(),
            "message_count": len(messages),
            "max_turns": max_turns,
        }
        if options.selected_context is not None:
            patch["selected_context"] = options.selected_context
        if not await self.store.update(session.id, messages, patch):
            raise SessionNotFoundError(session.id)

        if request_id and self.dedup is not None:
            await self.dedup.remember_pending(request_id, session.id)

        context = ToolContext(
            session_id=session.id,
            owner=owner,
            source=SessionSource.CHAT.value,
            selected_context=(
                options.selected_context
                if options.selected_context is not None
                else session.metadata.get("selected_context")
            ),
        )
        result = await self.executor.execute(
            messages,
            self.registry.get_available_tools(context),
            provider,
            model,
            max_turns,
            context,
            turns_consumed=0,
            single_turn=True,
        )
        turn_number = session.turn_count + result.turn_count

        if result.error is not None:
            if request_id and self.dedup is not None:
                await self.dedup.forget(request_id)
            await self._persist_failure(session.id, result, turn_number)
            raise result.error

        metadata = await self._persist_success(session.id, result, turn_number, final_status=None)
        if not session.title:
            self._dispatch_title(session.id)

        response = ChatTurnResponse(
            session_id=session.id,
            response=result.final_content,
            tool_calls=result.last_tool_calls,
            conversation=result.messages,
            metadata=metadata,
            completed=result.completed,
            turn_number=turn_number,
            max_turns=max_turns,
            max_turns_reached=result.max_turns_reached,
            warning=result.warning,
        )
        if request_id and self.dedup is not None:
            await self.dedup.remember_response(request_id, response.model_dump(mode="json"))
        return response

    async def process_continue(self, session_id: UUID, owner: str) -> ContinueResponse:
        """
        Resume a session left with pending tool calls.

        A session that is already completed with nothing pending is returned
        as-is, without a model call or a write.
        Continue calls share the turn budget of the user message they follow.

        Args:
            session_id: Session to resume
            owner: Verified requesting principal

        Returns:
            ContinueResponse: Only the messages appended by this call
        """
        session = await self._load_owned(session_id, owner)
        max_turns = self._session_max_turns(session)

        if session.is_finished:
            logger.info(f"{__name__}:process_continue - already completed session_id={session_id}")
            return ContinueResponse(
                session_id=session.id,
                final_content=_last_assistant_text(session.messages),
                completed=True,
                turn_number=session.turn_count,
                max_turns=max_turns,
            )

        provider, model = self._resolve_provider(None, None, session)
        context = ToolContext(
            session_id=session.id,
            owner=owner,
            source=session.source.value,
            selected_context=session.metadata.get("selected_context"),
        )
        result = await self.executor.execute(
            session.messages,
            self.registry.get_available_tools(context),
            provider,
            model,
            max_turns,
            context,
            turns_consumed=rounds_since_last_user(session.messages),
            single_turn=True,
        )
        turn_number = session.turn_count + result.turn_count

        if result.error is not None:
            await self._persist_failure(session.id, result, turn_number)
            raise result.error

        await self._persist_success(session.id, result, turn_number, final_status=None)

        return ContinueResponse(
            session_id=session.id,
            new_messages=result.new_messages,
            final_content=result.final_content,
            tool_calls=result.last_tool_calls,
            completed=result.completed,
            turn_number=turn_number,
            max_turns=max_turns,
            max_turns_reached=result.max_turns_reached,
        )

    async def process_ping(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> PingResponse:
        """
        Run an externally triggered session to completion.

        The session is owned by the configured ping principal, tagged
        ``source=ping``, and always ends ``completed`` unless the turn fails.
        """
        owner = self.settings.ping_owner
        provider, model = self._resolve_provider(provider, model, None)
        max_turns = self.settings.max_turns

        session = await self._create_session(owner, SessionSource.PING, provider, model)
        messages = [ChatMessage.user(message)]
        await self.store.update(
            session.id,
            messages,
            {
                "status": SessionStatus.PROCESSING,
                "last_activity_at": utcnow(),
                "message_count": len(messages),
                "max_turns": max_turns,
            },
        )

        context = ToolContext(session_id=session.id, owner=owner, source=SessionSource.PING.value)
        result = await self.executor.execute(
            messages,
            self.registry.get_available_tools(context),
            provider,
            model,
            max_turns,
            context,
            turns_consumed=0,
            single_turn=False,
        )

        if result.error is not None:
            await self._persist_failure(session.id, result, result.turn_count)
            raise result.error

        await self._persist_success(
            session.id, result, result.turn_count, final_status=SessionStatus.COMPLETED
        )
        self._dispatch_title(session.id)

        logger.info(
            f"{__name__}:process_ping - END session_id={session.id}, turns={result.turn_count}, "
            f"completed={result.completed}"
        )
        return PingResponse(
            session_id=session.id,
            response=result.final_content,
            turns=result.turn_count,
            completed=True,
        )

    async def _load_owned(self, session_id: UUID, owner: str) -> ChatSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.owner != owner:
            logger.warning(
                "Session access denied",
                extra={"session_id": str(session_id), "owner": owner},
            )
            raise SessionAccessDeniedError(session_id)
        return session

    async def _create_session(
        self,
        owner: str,
        source: SessionSource,
        provider: str,
        model: str,
    ) -> ChatSession:
        session_id = await self.store.create(
            owner,
            {"source": source, "provider": provider, "model": model, "started_at": utcnow()},
        )
        session = await self.store.get(session_id)
        if session is None:
            raise SessionPersistenceError("Created session could not be read back", {"session_id": str(session_id)})
        return session

    def _resolve_provider(
        self,
        provider: str | None,
        model: str | None,
        session: ChatSession | None,
    ) -> tuple[str, str]:
        # A session that already ran a turn keeps its provider and model
        if session is not None and session.turn_count > 0 and session.provider and session.model:
            return session.provider, session.model

        stored_provider = session.provider if session is not None else None
        stored_model = session.model if session is not None else None
        provider = provider or stored_provider or self.settings.default_provider
        model = model or stored_model or self.settings.default_model
        if not provider:
            raise ConfigurationMissingError("provider")
        if not model:
            raise ConfigurationMissingError("model")
        return provider, model

    def _session_max_turns(self, session: ChatSession | None) -> int:
        if session is not None and session.metadata.get("max_turns"):
            return int(session.metadata["max_turns"])
        return self.settings.max_turns

    async def _persist_success(
        self,
        session_id: UUID,
        result: TurnResult,
        turn_number: int,
        final_status: SessionStatus | None,
    ) -> dict[str, Any]:
        now = utcnow()
        status = final_status or (SessionStatus.COMPLETED if result.completed else SessionStatus.PROCESSING)
        patch: dict[str, Any] = {
            "status": status,
            "turn_count": turn_number,
            "has_pending_tools": result.has_pending_tools,
            "last_activity_at": now,
            "message_count": len(result.messages),
            "error_message": None,
        }
        if status == SessionStatus.COMPLETED:
            patch["completed_at"] = now
        if not await self.store.update(session_id, result.messages, patch):
            raise SessionNotFoundError(session_id)

        return {
            "status": status.value,
            "turn_count": turn_number,
            "has_pending_tools": result.has_pending_tools,
            "message_count": len(result.messages),
            "last_activity": now.isoformat(),
        }

    async def _persist_failure(self, session_id: UUID, result: TurnResult, turn_number: int) -> None:
        error = result.error
        patch = {
            "status": SessionStatus.ERROR,
            "turn_count": turn_number,
            "has_pending_tools": result.has_pending_tools,
            "last_activity_at": utcnow(),
            "message_count": len(result.messages),
            "error_message": error.message if error else None,
            "error_code": error.code if error else None,
        }
        try:
            await self.store.update(session_id, result.messages, patch)
        except SessionPersistenceError as e:
            # Surface the turn error; the write failure is only logged
            log_exception_with_context(
                logger,
                "Failed to persist failed turn",
                e,
                session_id=session_id,
            )

    def _dispatch_title(self, session_id: UUID) -> None:
        if self._title_dispatcher is None:
            return
        try:
            self._title_dispatcher(session_id)
        except Exception as e:
            log_exception_with_context(logger, "Title dispatch failed", e, session_id=session_id)


def _last_assistant_text(messages: list[ChatMessage]) -> str:
    for message in reversed(messages):
        if message.role == MessageRole.ASSISTANT:
            return message.text
    return ""
