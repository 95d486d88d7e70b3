"""
Session title generation.

Titles are produced after a session has content, outside the turn that
triggered them. The model is asked for a short title when the session has a
provider; otherwise (or when that call fails) the first user message is
shortened instead.

Dependencies: sqlalchemy, chat_engine.core.agentic_system.provider
System role: Background enrichment of session records
"""

import asyncio
import logging
import re
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat_engine.application.services.session_store import SessionStore
from chat_engine.core.agentic_system.provider.chat_provider import AIProvider
from chat_engine.models.message import ChatMessage, MessageRole
from chat_engine.models.session import ChatSession
from chat_engine.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

TITLE_PROMPT = (
    "Write a short title (at most six words) for a conversation that starts with the "
    "message below. Reply with the title only, without quotes.\n\n{message}"
)


class TitleService:
    """Generates and stores session titles."""

    def __init__(self, provider: AIProvider | None = None, max_length: int = 60) -> None:
        self._provider = provider
        self._max_length = max_length

    async def generate_for(self, store: SessionStore, session_id: UUID) -> str | None:
        """
        Title a session if it has none yet.

        Args:
            store: Store bound to the caller's database session
            session_id: Session to title

        Returns:
            str | None: The stored title, or None when nothing was done
        """
        session = await store.get(session_id)
        if session is None or session.title:
            return None

        first_user = next((m for m in session.messages if m.role == MessageRole.USER), None)
        if first_user is None:
            return None

        title = await self._generate(session, first_user.text)
        if not title:
            return None

        await store.set_title(session_id, title)
        logger.info(f"{__name__}:generate_for - titled session_id={session_id}")
        return title

    async def _generate(self, session: ChatSession, text: str) -> str:
        if self._provider is not None and session.provider and session.model:
            try:
                reply = await self._provider.complete(
                    [ChatMessage.user(TITLE_PROMPT.format(message=text))],
                    [],
                    session.provider,
                    session.model,
                )
                title = self._clean(reply.content.strip().strip("\"'"))
                if title:
                    return title
            except Exception as e:
                logger.warning(
                    "Title generation via model failed, falling back to message text",
                    extra={"session_id": str(session.id), "error": str(e)},
                )
        return self._clean(text)

    def _clean(self, text: str) -> str:
        title = re.sub(r"\s+", " ", text).strip()
        if len(title) <= self._max_length:
            return title
        cut = title[: self._max_length - 3].rsplit(" ", 1)[0] or title[: self._max_length - 3]
        return cut.rstrip() + "..."


class BackgroundTitleDispatcher:
    """
    Fire-and-forget title generation.

    Each dispatch runs as an asyncio task with its own database session so
    it never shares a transaction with the request that triggered it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        title_service: TitleService,
    ) -> None:
        self._session_factory = session_factory
        self._title_service = title_service
        self._tasks: set[asyncio.Task] = set()

    def __call__(self, session_id: UUID) -> None:
        task = asyncio.create_task(self._run(session_id))
        # Keep a reference until done so the task is not garbage collected
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, session_id: UUID) -> None:
        async with self._session_factory() as db:
            try:
                await self._title_service.generate_for(SessionStore(db), session_id)
            except Exception as e:
                log_exception_with_context(
                    logger,
                    "Background title generation failed",
                    e,
                    session_id=session_id,
                )
