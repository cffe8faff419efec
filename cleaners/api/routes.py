"""
API route definitions.

Endpoints:
    POST   /api/chat/message                         Send a chat turn
    GET    /api/chat/history/{session_id}            Session memory for a session
    DELETE /api/chat/session/{session_id}            Forget a session
    GET    /api/chat/conversations                   Durable conversations for the caller
    GET    /api/chat/conversations/{id}/messages     Durable messages of a conversation
    GET    /api/knowledge                            List knowledge articles
    POST   /api/knowledge                            Create a knowledge article
    GET    /api/knowledge/search?q=                  Semantic knowledge search
    DELETE /api/knowledge/{item_id}                  Delete a knowledge article
    GET    /health                                   Liveness probe
    GET    /healthz                                  Durable store health
    GET    /metrics                                  Prometheus metrics

Errors are returned as ``{"code": ..., "message": ...}`` JSON bodies.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime

from fastapi import APIRouter, Header, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cleaners.api.metrics import metrics_response, record_error
from cleaners.config import MAX_MESSAGE_LENGTH, REQUEST_TIMEOUT_SECONDS, get_logger
from cleaners.core import CleanersError, GatewayError, KnowledgeItem, UserContext
from cleaners.utils import utcnow

logger = get_logger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SendMessageRequest(BaseModel):
    """Request body for POST /api/chat/message."""

    # Blank messages are rejected by the chat service with EMPTY_MESSAGE
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH, description="User message")
    session_id: str | None = Field(None, description="Existing session; omit to start one")
    location: str | None = Field(None, description="Zipcode for partner shop suggestions")


class CreateKnowledgeRequest(BaseModel):
    """Request body for POST /api/knowledge."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    category: str = Field("general", description="e.g. stain, fabric, washing")
    tags: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ShopItem(BaseModel):
    """A recommended partner shop."""

    name: str
    zipcode: str
    priority: str
    rating: float
    specialties: list[str]


class SendMessageResponse(BaseModel):
    """Response body for POST /api/chat/message."""

    message: str
    session_id: str
    timestamp: str
    recommended_shops: list[ShopItem]


class ChatTurn(BaseModel):
    role: str
    content: str


class HistoryResponse(BaseModel):
    session_id: str
    messages: list[ChatTurn]


class ConversationItem(BaseModel):
    id: str
    title: str
    language: str
    created_at: datetime
    updated_at: datetime


class ConversationsResponse(BaseModel):
    conversations: list[ConversationItem]


class StoredMessageItem(BaseModel):
    id: str
    role: str
    content: str
    created_at: datetime


class ConversationMessagesResponse(BaseModel):
    conversation_id: str
    messages: list[StoredMessageItem]


class KnowledgeItemResponse(BaseModel):
    id: str
    title: str
    content: str
    category: str
    tags: list[str]
    score: float | None = None


class KnowledgeListResponse(BaseModel):
    items: list[KnowledgeItemResponse]
    count: int


class ErrorResponse(BaseModel):
    """Structured error response (not stack traces)."""

    code: str
    message: str


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Build a standardized JSON error response."""
    record_error(code)
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


def _domain_error_response(exc: CleanersError) -> JSONResponse:
    return _error_response(exc.status_code, exc.code, exc.message)


def _user_context(x_user_id: str | None) -> UserContext:
    """Map the optional X-User-Id header to a caller identity."""
    if x_user_id and x_user_id.strip():
        return UserContext(user_id=x_user_id.strip())
    return UserContext.anonymous()


def _knowledge_to_dict(item: KnowledgeItem) -> dict:
    return {
        "id": item.id,
        "title": item.title,
        "content": item.content,
        "category": item.category,
        "tags": list(item.tags),
        "score": round(item.score, 4) if item.score is not None else None,
    }


_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(request: Request):
    """Liveness probe. Reports which optional components are configured."""
    state = request.app.state
    return {
        "status": "ok",
        "active_sessions": state.session_store.session_count(),
        "knowledge_configured": state.knowledge is not None,
        "conversation_store_configured": state.conversation_store is not None,
    }


@router.get("/healthz")
async def healthz(request: Request):
    """Durable store probe. 503 when a configured database does not answer."""
    store = request.app.state.conversation_store
    if store is None:
        return {"status": "healthy", "db": "disabled"}

    try:
        db_ok = await asyncio.to_thread(store.ping)
    except Exception:
        logger.exception("Health check: database ping raised")
        db_ok = False

    if not db_ok:
        return JSONResponse(status_code=503, content={"status": "unhealthy", "db": "error"})
    return {"status": "healthy", "db": "connected"}


@router.get("/metrics", include_in_schema=False)
async def metrics():
    body, content_type = metrics_response()
    return Response(content=body, media_type=content_type)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@router.post(
    "/api/chat/message",
    response_model=SendMessageResponse,
    responses=_ERROR_RESPONSES,
)
async def send_message(
    request: Request,
    body: SendMessageRequest,
    x_user_id: str | None = Header(None),
):
    """Process one chat turn and return the assistant reply.

    Runs the blocking orchestrator in a worker thread and waits for it to
    finish. The orchestrator enforces the request deadline itself, so a
    timed-out turn never records a reply after the response is sent. The
    user message already recorded in session memory is kept.
    """
    chat = request.app.state.chat
    user = _user_context(x_user_id)

    deadline = time.monotonic() + REQUEST_TIMEOUT_SECONDS

    try:
        result = await asyncio.to_thread(
            chat.process_message,
            body.message,
            body.session_id or "",
            body.location or "",
            user,
            deadline=deadline,
        )
    except GatewayError as e:
        if not e.timed_out:
            logger.warning("Chat request failed: %s (%s)", e.code, e.message)
            return _domain_error_response(e)
        logger.warning("Chat request timed out after %.1fs", REQUEST_TIMEOUT_SECONDS)
        return _error_response(
            504, "TIMEOUT", f"Request timeout ({REQUEST_TIMEOUT_SECONDS}s). Please try again."
        )
    except CleanersError as e:
        logger.warning("Chat request failed: %s (%s)", e.code, e.message)
        return _domain_error_response(e)
    except Exception:
        logger.exception("Chat request failed unexpectedly")
        return _error_response(500, "INTERNAL_ERROR", "Internal server error")

    return {
        "message": result.message,
        "session_id": result.session_id,
        "timestamp": utcnow().isoformat(),
        "recommended_shops": [
            {
                "name": shop.name,
                "zipcode": shop.zipcode,
                "priority": shop.priority,
                "rating": shop.rating,
                "specialties": sorted(shop.specialties),
            }
            for shop in result.recommended_shops
        ],
    }


@router.get(
    "/api/chat/history/{session_id}",
    response_model=HistoryResponse,
    responses={503: {"model": ErrorResponse}},
)
async def get_history(request: Request, session_id: str):
    """Return the bounded session memory, oldest first."""
    try:
        messages = request.app.state.chat.history(session_id)
    except CleanersError as e:
        return _domain_error_response(e)
    return {
        "session_id": session_id,
        "messages": [m.to_chat_turn() for m in messages],
    }


@router.delete(
    "/api/chat/session/{session_id}",
    responses={503: {"model": ErrorResponse}},
)
async def clear_session(request: Request, session_id: str):
    """Forget a session. Idempotent."""
    try:
        request.app.state.chat.clear_session(session_id)
    except CleanersError as e:
        return _domain_error_response(e)
    return {"status": "cleared", "session_id": session_id}


@router.get(
    "/api/chat/conversations",
    response_model=ConversationsResponse,
    responses={503: {"model": ErrorResponse}},
)
async def list_conversations(request: Request, x_user_id: str | None = Header(None)):
    """Durable conversations owned by the caller (empty without a database)."""
    store = request.app.state.conversation_store
    if store is None:
        return {"conversations": []}

    try:
        conversations = await asyncio.to_thread(store.list_by_user, _user_context(x_user_id))
    except CleanersError as e:
        logger.error("Failed to list conversations: %s", e.message)
        return _domain_error_response(e)

    return {
        "conversations": [
            {
                "id": c.id,
                "title": c.title,
                "language": c.language,
                "created_at": c.created_at,
                "updated_at": c.updated_at,
            }
            for c in conversations
        ]
    }


@router.get(
    "/api/chat/conversations/{conversation_id}/messages",
    response_model=ConversationMessagesResponse,
    responses={503: {"model": ErrorResponse}},
)
async def list_conversation_messages(request: Request, conversation_id: str):
    """Full durable history of one conversation."""
    store = request.app.state.conversation_store
    if store is None:
        return {"conversation_id": conversation_id, "messages": []}

    try:
        messages = await asyncio.to_thread(store.list_messages, conversation_id)
    except CleanersError as e:
        logger.error("Failed to list messages for %s: %s", conversation_id, e.message)
        return _domain_error_response(e)

    return {
        "conversation_id": conversation_id,
        "messages": [
            {
                "id": m.id,
                "role": m.role.value,
                "content": m.content,
                "created_at": m.created_at,
            }
            for m in messages
        ],
    }


# ---------------------------------------------------------------------------
# Knowledge
# ---------------------------------------------------------------------------


def _knowledge_unavailable() -> JSONResponse:
    return _error_response(
        503, "KNOWLEDGE_UNAVAILABLE", "Knowledge index is not configured"
    )


@router.get(
    "/api/knowledge",
    response_model=KnowledgeListResponse,
    responses={503: {"model": ErrorResponse}},
)
async def list_knowledge(request: Request):
    knowledge = request.app.state.knowledge
    if knowledge is None:
        return _knowledge_unavailable()

    try:
        items = await asyncio.to_thread(knowledge.list_knowledge)
    except Exception:
        logger.exception("Failed to list knowledge")
        return _error_response(502, "KNOWLEDGE_FAILED", "Failed to list knowledge")

    return {"items": [_knowledge_to_dict(i) for i in items], "count": len(items)}


@router.post(
    "/api/knowledge",
    status_code=201,
    responses={502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def create_knowledge(request: Request, body: CreateKnowledgeRequest):
    """Embed and index a new knowledge article."""
    knowledge = request.app.state.knowledge
    if knowledge is None:
        return _knowledge_unavailable()

    item = KnowledgeItem(
        id="",
        title=body.title,
        content=body.content,
        category=body.category,
        tags=list(body.tags),
    )
    try:
        item = await asyncio.to_thread(knowledge.index_knowledge, item)
    except Exception:
        logger.exception("Failed to index knowledge: %s", body.title)
        return _error_response(502, "KNOWLEDGE_FAILED", "Failed to create knowledge")

    return {"id": item.id, "message": "Knowledge created successfully"}


@router.get(
    "/api/knowledge/search",
    response_model=KnowledgeListResponse,
    responses={502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def search_knowledge(
    request: Request,
    q: str = Query(..., min_length=1, max_length=500),
    top_k: int = Query(5, ge=1, le=20),
):
    knowledge = request.app.state.knowledge
    if knowledge is None:
        return _knowledge_unavailable()

    try:
        items = await asyncio.to_thread(knowledge.search_knowledge, q, top_k)
    except CleanersError as e:
        logger.warning("Knowledge search failed: %s", e.message)
        return _domain_error_response(e)

    return {"items": [_knowledge_to_dict(i) for i in items], "count": len(items)}


@router.delete(
    "/api/knowledge/{item_id}",
    responses={502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def delete_knowledge(request: Request, item_id: str):
    knowledge = request.app.state.knowledge
    if knowledge is None:
        return _knowledge_unavailable()

    try:
        await asyncio.to_thread(knowledge.delete_knowledge, item_id)
    except Exception:
        logger.exception("Failed to delete knowledge %s", item_id)
        return _error_response(502, "KNOWLEDGE_FAILED", "Failed to delete knowledge")

    return {"id": item_id, "message": "Knowledge deleted successfully"}
