"""
Test suite for chat API endpoints.

Tests POST /chat, /chat/continue and /chat/ping with FastAPI TestClient and
a mocked SessionOrchestrator.

System role: Verification of chat HTTP API endpoints
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_engine.api.deps import get_session_orchestrator, get_settings_dependency
from chat_engine.api.routers.chat import build_ping_message, router
from chat_engine.configs import Settings
from chat_engine.configs.chat import ChatSettings
from chat_engine.core.exceptions import (
    ConfigurationMissingError,
    ProviderFailureError,
    SessionAccessDeniedError,
    SessionNotFoundError,
)
from chat_engine.models.chat import ChatTurnResponse, ContinueResponse, PingRequest, PingResponse
from chat_engine.models.message import ChatMessage

USER = {"X-User-ID": "alice"}


@pytest.fixture
def mock_orchestrator() -> AsyncMock:
    """Provide mocked SessionOrchestrator."""
    return AsyncMock()


@pytest.fixture
def app(mock_orchestrator) -> FastAPI:
    """Create FastAPI test application with chat router."""
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_session_orchestrator] = lambda: mock_orchestrator
    app.dependency_overrides[get_settings_dependency] = lambda: Settings(
        chat=ChatSettings(ping_secret="s3cret")
    )
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Provide TestClient for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def sample_session_id() -> uuid.UUID:
    """Provide sample session UUID."""
    return uuid.uuid4()


class TestChatEndpoint:
    """Tests for POST /chat."""

    def test_success_envelope(self, client, mock_orchestrator, sample_session_id) -> None:
        mock_orchestrator.process_new_message.return_value = ChatTurnResponse(
            session_id=sample_session_id,
            response="Hello!",
            conversation=[ChatMessage.user("Hi"), ChatMessage.assistant("Hello!")],
            completed=True,
            turn_number=1,
            max_turns=12,
        )

        response = client.post("/chat", json={"message": "Hi"}, headers={**USER, "X-Request-ID": "req-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["session_id"] == str(sample_session_id)
        assert body["data"]["completed"] is True
        assert [m["role"] for m in body["data"]["conversation"]] == ["user", "assistant"]

        kwargs = mock_orchestrator.process_new_message.call_args.kwargs
        assert kwargs["owner"] == "alice"
        assert kwargs["options"].request_id == "req-1"

    def test_session_and_context_are_forwarded(self, client, mock_orchestrator, sample_session_id) -> None:
        mock_orchestrator.process_new_message.return_value = ChatTurnResponse(session_id=sample_session_id)

        client.post(
            "/chat",
            json={
                "message": "Hi",
                "provider": "google_genai",
                "model": "gemini-2.5-flash",
                "session_id": str(sample_session_id),
                "selected_context": {"pipeline_id": 4},
            },
            headers=USER,
        )

        kwargs = mock_orchestrator.process_new_message.call_args.kwargs
        assert kwargs["provider"] == "google_genai"
        assert kwargs["options"].session_id == sample_session_id
        assert kwargs["options"].selected_context == {"pipeline_id": 4}
        assert kwargs["options"].request_id is None

    def test_missing_user_header_is_401(self, client, mock_orchestrator) -> None:
        response = client.post("/chat", json={"message": "Hi"})

        assert response.status_code == 401
        mock_orchestrator.process_new_message.assert_not_called()

    def test_empty_message_is_rejected(self, client) -> None:
        response = client.post("/chat", json={"message": ""}, headers=USER)

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "error,status_code,code",
        [
            (SessionNotFoundError("x"), 404, "session_not_found"),
            (SessionAccessDeniedError("x"), 403, "session_access_denied"),
            (ConfigurationMissingError("provider"), 400, "configuration_missing"),
            (ProviderFailureError("AI provider call failed: timeout"), 502, "provider_failure"),
        ],
    )
    def test_errors_map_to_stable_codes(self, client, mock_orchestrator, error, status_code, code) -> None:
        mock_orchestrator.process_new_message.side_effect = error

        response = client.post("/chat", json={"message": "Hi"}, headers=USER)

        assert response.status_code == status_code
        assert response.json()["detail"]["code"] == code
        assert response.json()["detail"]["message"] == error.message

    def test_unexpected_error_is_500(self, client, mock_orchestrator) -> None:
        mock_orchestrator.process_new_message.side_effect = RuntimeError("bug")

        response = client.post("/chat", json={"message": "Hi"}, headers=USER)

        assert response.status_code == 500
        assert response.json()["detail"]["code"] == "unexpected_failure"


class TestContinueEndpoint:
    """Tests for POST /chat/continue."""

    def test_returns_delta(self, client, mock_orchestrator, sample_session_id) -> None:
        mock_orchestrator.process_continue.return_value = ContinueResponse(
            session_id=sample_session_id,
            new_messages=[ChatMessage.assistant("done")],
            final_content="done",
            completed=True,
            turn_number=2,
            max_turns=12,
        )

        response = client.post("/chat/continue", json={"session_id": str(sample_session_id)}, headers=USER)

        assert response.status_code == 200
        assert response.json()["data"]["final_content"] == "done"
        mock_orchestrator.process_continue.assert_awaited_once_with(sample_session_id, "alice")


class TestPingEndpoint:
    """Tests for POST /chat/ping."""

    def test_valid_token(self, client, mock_orchestrator, sample_session_id) -> None:
        mock_orchestrator.process_ping.return_value = PingResponse(
            session_id=sample_session_id, response="ok", turns=2
        )

        response = client.post(
            "/chat/ping",
            json={"message": "run", "prompt": "You are the nightly agent."},
            headers={"Authorization": "Bearer s3cret"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["turns"] == 2
        mock_orchestrator.process_ping.assert_awaited_once_with("You are the nightly agent.\n\nrun")

    def test_missing_authorization_is_401(self, client, mock_orchestrator) -> None:
        response = client.post("/chat/ping", json={"message": "run"})

        assert response.status_code == 401
        mock_orchestrator.process_ping.assert_not_called()

    def test_wrong_token_is_403(self, client, mock_orchestrator) -> None:
        response = client.post("/chat/ping", json={"message": "run"}, headers={"Authorization": "Bearer nope"})

        assert response.status_code == 403
        mock_orchestrator.process_ping.assert_not_called()

    def test_unconfigured_secret_is_403(self, app, client) -> None:
        app.dependency_overrides[get_settings_dependency] = lambda: Settings(chat=ChatSettings(ping_secret=None))

        response = client.post("/chat/ping", json={"message": "run"}, headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == 403


class TestBuildPingMessage:
    """Tests for ping message assembly."""

    def test_message_only(self) -> None:
        assert build_ping_message(PingRequest(message="run")) == "run"

    def test_context_is_appended_as_json(self) -> None:
        message = build_ping_message(PingRequest(message="run", context={"flow_id": 9}))

        assert message.startswith("run\n\n**Pipeline Context:**\n```json\n")
        assert '"flow_id": 9' in message
