"""Tests for cleaners.api.routes — API endpoint behavior.

Uses a test app with mocked state to avoid building real provider clients.
"""

import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cleaners.api.middleware import LatencyMiddleware, _normalize_path
from cleaners.api.routes import router
from cleaners.core import (
    Conversation,
    EmptyInput,
    GatewayError,
    KnowledgeItem,
    PartnerShop,
    RecommendationResult,
    RetrievalError,
    Role,
    SessionMessage,
    StoredMessage,
    StoreUnavailable,
)
from cleaners.services.chat import ChatService
from cleaners.services.session_store import SessionStore
from cleaners.services.shops import RecommendationEvaluator


def _make_app(**state_overrides) -> FastAPI:
    """Create a test app with mocked state."""
    app = FastAPI()
    app.add_middleware(LatencyMiddleware)
    app.include_router(router)

    app.state.session_store = state_overrides.get("session_store", SessionStore())
    app.state.chat = state_overrides.get("chat", MagicMock())
    app.state.knowledge = state_overrides.get("knowledge", None)
    app.state.conversation_store = state_overrides.get("conversation_store", None)
    return app


@pytest.fixture
def client():
    """Test client with default mocked state."""
    return TestClient(_make_app())


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealthEndpoints:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["active_sessions"] == 0
        assert data["knowledge_configured"] is False

    def test_healthz_without_database(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.json()["db"] == "disabled"

    def test_healthz_database_connected(self):
        store = MagicMock()
        store.ping.return_value = True
        resp = TestClient(_make_app(conversation_store=store)).get("/healthz")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "db": "connected"}

    def test_healthz_database_down(self):
        store = MagicMock()
        store.ping.return_value = False
        resp = TestClient(_make_app(conversation_store=store)).get("/healthz")
        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"

    def test_metrics(self, client):
        client.get("/health")
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "cleaners_requests_total" in resp.text

    def test_response_headers(self, client):
        resp = client.get("/health")
        assert "x-request-id" in resp.headers
        assert "x-response-time-ms" in resp.headers


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class TestSendMessage:
    def test_success(self):
        chat = MagicMock()
        chat.process_message.return_value = RecommendationResult(
            message="전문 세탁소를 추천드립니다",
            recommended_shops=(
                PartnerShop(
                    name="클린마스터 세탁소",
                    zipcode="06234",
                    priority="partner",
                    rating=4.8,
                    specialties=frozenset({"캐시미어", "실크"}),
                ),
            ),
            session_id="s1",
        )
        c = TestClient(_make_app(chat=chat))

        resp = c.post(
            "/api/chat/message",
            json={"message": "실크 셔츠", "session_id": "s1", "location": "06234"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "전문 세탁소를 추천드립니다"
        assert data["session_id"] == "s1"
        assert data["timestamp"]
        assert data["recommended_shops"] == [
            {
                "name": "클린마스터 세탁소",
                "zipcode": "06234",
                "priority": "partner",
                "rating": 4.8,
                "specialties": ["실크", "캐시미어"],
            }
        ]
        args = chat.process_message.call_args.args
        assert args[:3] == ("실크 셔츠", "s1", "06234")
        assert args[3].is_anonymous

    def test_user_header_sets_identity(self):
        chat = MagicMock()
        chat.process_message.return_value = RecommendationResult("ok", (), "s1")
        c = TestClient(_make_app(chat=chat))

        c.post("/api/chat/message", json={"message": "hi"}, headers={"X-User-Id": "u-42"})

        user = chat.process_message.call_args.args[3]
        assert user.user_id == "u-42"

    def test_missing_optional_fields_default_to_empty(self):
        chat = MagicMock()
        chat.process_message.return_value = RecommendationResult("ok", (), "generated")
        c = TestClient(_make_app(chat=chat))

        resp = c.post("/api/chat/message", json={"message": "hi"})

        assert resp.json()["session_id"] == "generated"
        assert chat.process_message.call_args.args[1:3] == ("", "")

    def test_empty_message_returns_400(self):
        chat = MagicMock()
        chat.process_message.side_effect = EmptyInput()
        resp = TestClient(_make_app(chat=chat)).post("/api/chat/message", json={"message": ""})
        assert resp.status_code == 400
        assert resp.json() == {"code": "EMPTY_MESSAGE", "message": "Message cannot be empty."}

    def test_missing_body_field_returns_422(self, client):
        resp = client.post("/api/chat/message", json={})
        assert resp.status_code == 422

    @pytest.mark.parametrize(
        "error, status",
        [
            (GatewayError("down"), 502),
            (GatewayError("slow down", kind=GatewayError.RATE_LIMITED), 429),
            (StoreUnavailable("closed"), 503),
        ],
    )
    def test_domain_errors_mapped(self, error, status):
        chat = MagicMock()
        chat.process_message.side_effect = error
        resp = TestClient(_make_app(chat=chat)).post("/api/chat/message", json={"message": "hi"})
        assert resp.status_code == status
        assert resp.json()["code"] == error.code

    def test_unexpected_error_returns_500(self):
        chat = MagicMock()
        chat.process_message.side_effect = KeyError("bug")
        resp = TestClient(_make_app(chat=chat)).post("/api/chat/message", json={"message": "hi"})
        assert resp.status_code == 500
        assert resp.json()["code"] == "INTERNAL_ERROR"

    def test_end_to_end_with_real_service(self):
        store = SessionStore()
        gateway = MagicMock()
        gateway.complete.return_value = "찬물에 담가두세요"
        chat = ChatService(store, gateway, RecommendationEvaluator())
        c = TestClient(_make_app(chat=chat, session_store=store))

        first = c.post("/api/chat/message", json={"message": "캐시미어 니트", "location": "06234"})
        session_id = first.json()["session_id"]
        c.post("/api/chat/message", json={"message": "또 질문", "session_id": session_id})

        assert len(first.json()["recommended_shops"]) == 2
        history = c.get(f"/api/chat/history/{session_id}").json()
        assert [m["role"] for m in history["messages"]] == ["user", "assistant", "user", "assistant"]

    def test_timed_out_gateway_error_returns_504(self):
        chat = MagicMock()
        chat.process_message.side_effect = GatewayError("slow", timed_out=True)
        resp = TestClient(_make_app(chat=chat)).post("/api/chat/message", json={"message": "hi"})
        assert resp.status_code == 504
        assert resp.json()["code"] == "TIMEOUT"

    def test_deadline_passed_to_service(self):
        chat = MagicMock()
        chat.process_message.return_value = RecommendationResult("ok", (), "s1")
        before = time.monotonic()

        TestClient(_make_app(chat=chat)).post("/api/chat/message", json={"message": "hi"})

        assert chat.process_message.call_args.kwargs["deadline"] > before

    def test_timed_out_turn_never_records_reply(self, monkeypatch):
        monkeypatch.setattr("cleaners.api.routes.REQUEST_TIMEOUT_SECONDS", 0.1)
        store = SessionStore()
        gateway = MagicMock()

        def slow_complete(*args):
            time.sleep(0.3)
            return "늦은 답변"

        gateway.complete.side_effect = slow_complete
        chat = ChatService(store, gateway, RecommendationEvaluator())
        c = TestClient(_make_app(chat=chat, session_store=store))

        resp = c.post("/api/chat/message", json={"message": "실크 얼룩", "session_id": "s1"})
        assert resp.status_code == 504
        assert resp.json()["code"] == "TIMEOUT"

        time.sleep(0.3)
        history = c.get("/api/chat/history/s1").json()
        assert [m["role"] for m in history["messages"]] == ["user"]


class TestSessionEndpoints:
    def test_history(self):
        chat = MagicMock()
        chat.history.return_value = [
            SessionMessage(Role.USER, "q"),
            SessionMessage(Role.ASSISTANT, "a"),
        ]
        resp = TestClient(_make_app(chat=chat)).get("/api/chat/history/s1")
        assert resp.status_code == 200
        assert resp.json() == {
            "session_id": "s1",
            "messages": [
                {"role": "user", "content": "q"},
                {"role": "assistant", "content": "a"},
            ],
        }

    def test_clear_session(self):
        chat = MagicMock()
        resp = TestClient(_make_app(chat=chat)).delete("/api/chat/session/s1")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cleared"
        chat.clear_session.assert_called_once_with("s1")


class TestConversationEndpoints:
    def test_empty_without_store(self, client):
        resp = client.get("/api/chat/conversations")
        assert resp.status_code == 200
        assert resp.json() == {"conversations": []}

    def test_lists_for_caller(self):
        store = MagicMock()
        store.list_by_user.return_value = [
            Conversation("c1", "u-1", "실크 얼룩", "ko", NOW, NOW, "s1"),
        ]
        c = TestClient(_make_app(conversation_store=store))

        resp = c.get("/api/chat/conversations", headers={"X-User-Id": "u-1"})

        assert resp.status_code == 200
        assert resp.json()["conversations"][0]["title"] == "실크 얼룩"
        assert store.list_by_user.call_args.args[0].user_id == "u-1"

    def test_store_failure_returns_503(self):
        store = MagicMock()
        store.list_by_user.side_effect = StoreUnavailable("db down")
        resp = TestClient(_make_app(conversation_store=store)).get("/api/chat/conversations")
        assert resp.status_code == 503
        assert resp.json()["code"] == "STORE_UNAVAILABLE"

    def test_conversation_messages(self):
        store = MagicMock()
        store.list_messages.return_value = [StoredMessage("1", "c1", Role.USER, "질문", NOW)]
        resp = TestClient(_make_app(conversation_store=store)).get(
            "/api/chat/conversations/c1/messages"
        )
        assert resp.status_code == 200
        assert resp.json()["messages"][0]["role"] == "user"


# ---------------------------------------------------------------------------
# Knowledge
# ---------------------------------------------------------------------------


class TestKnowledgeEndpoints:
    @pytest.mark.parametrize(
        "method, path",
        [
            ("get", "/api/knowledge"),
            ("get", "/api/knowledge/search?q=silk"),
            ("delete", "/api/knowledge/k1"),
        ],
    )
    def test_unconfigured_returns_503(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 503
        assert resp.json()["code"] == "KNOWLEDGE_UNAVAILABLE"

    def test_create_unconfigured_returns_503(self, client):
        resp = client.post("/api/knowledge", json={"title": "t", "content": "c"})
        assert resp.status_code == 503

    def test_create(self):
        knowledge = MagicMock()
        knowledge.index_knowledge.side_effect = lambda item: KnowledgeItem(
            id="k1", title=item.title, content=item.content
        )
        c = TestClient(_make_app(knowledge=knowledge))

        resp = c.post("/api/knowledge", json={"title": "실크", "content": "손세탁", "tags": ["fabric"]})

        assert resp.status_code == 201
        assert resp.json()["id"] == "k1"
        item = knowledge.index_knowledge.call_args.args[0]
        assert item.tags == ["fabric"]

    def test_search(self):
        knowledge = MagicMock()
        knowledge.search_knowledge.return_value = [
            KnowledgeItem(id="k1", title="와인", content="소금", score=0.91234),
        ]
        c = TestClient(_make_app(knowledge=knowledge))

        resp = c.get("/api/knowledge/search", params={"q": "와인", "top_k": 2})

        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 1
        assert data["items"][0]["score"] == 0.9123
        knowledge.search_knowledge.assert_called_once_with("와인", 2)

    def test_search_failure_returns_502(self):
        knowledge = MagicMock()
        knowledge.search_knowledge.side_effect = RetrievalError("down")
        resp = TestClient(_make_app(knowledge=knowledge)).get("/api/knowledge/search?q=x")
        assert resp.status_code == 502

    def test_delete(self):
        knowledge = MagicMock()
        resp = TestClient(_make_app(knowledge=knowledge)).delete("/api/knowledge/k1")
        assert resp.status_code == 200
        knowledge.delete_knowledge.assert_called_once_with("k1")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class TestPathNormalization:
    @pytest.mark.parametrize(
        "raw, label",
        [
            ("/health", "/health"),
            ("/api/chat/message/", "/api/chat/message"),
            ("/api/chat/history/abc123", "/api/chat/history/{session_id}"),
            ("/api/chat/conversations/c1/messages", "/api/chat/conversations/{conversation_id}/messages"),
            ("/api/knowledge/search", "/api/knowledge/search"),
            ("/api/knowledge/k1", "/api/knowledge/{item_id}"),
            ("/wp-admin/setup.php", "unknown"),
        ],
    )
    def test_labels(self, raw, label):
        assert _normalize_path(raw) == label
