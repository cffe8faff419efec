"""
FastAPI application factory.

Creates the app with lifespan-managed singletons (model gateway, session
store, knowledge service, shop directory, conversation store, chat
service) so clients are built once at startup and shared across requests.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from cleaners.api.middleware import LatencyMiddleware
from cleaners.api.routes import router
from cleaners.config import get_logger

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")]

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Initialize shared resources at startup, release at shutdown."""
    logger.info("Starting Cleaners API...")

    # Validate LLM credentials early
    from cleaners.config import (
        ANTHROPIC_API_KEY,
        LLM_PROVIDER,
        OPENAI_API_KEY,
        OPENROUTER_API_KEY,
    )

    provider_keys = {
        "openrouter": ("OPENROUTER_API_KEY", OPENROUTER_API_KEY),
        "openai": ("OPENAI_API_KEY", OPENAI_API_KEY),
        "anthropic": ("ANTHROPIC_API_KEY", ANTHROPIC_API_KEY),
    }
    if LLM_PROVIDER in provider_keys and not provider_keys[LLM_PROVIDER][1]:
        logger.warning(
            "LLM_PROVIDER=%s but %s is not set", LLM_PROVIDER, provider_keys[LLM_PROVIDER][0]
        )

    # Model gateway -- required for chat
    from cleaners.adapters.llm import get_gateway

    try:
        gateway = get_gateway()
        logger.info("Model gateway ready (%s)", gateway.model)
    except Exception:
        logger.exception("Failed to initialize model gateway -- cannot start")
        raise

    # Session memory
    from cleaners.services.session_store import SessionStore

    app.state.session_store = SessionStore()

    # Knowledge index and partner directory -- Qdrant if configured
    from cleaners.adapters import vector_store
    from cleaners.services.knowledge import KnowledgeService
    from cleaners.services.shops import (
        QdrantShopDirectory,
        RecommendationEvaluator,
        StaticShopDirectory,
    )

    if vector_store.is_configured():
        from cleaners.adapters.embeddings import get_embedder

        client = vector_store.get_client()
        app.state.knowledge = KnowledgeService(client, get_embedder())
        directory = QdrantShopDirectory(client)
        try:
            if vector_store.collection_exists(client):
                logger.info("Qdrant knowledge collection verified")
            else:
                logger.warning("Qdrant knowledge collection not found -- answers will be ungrounded")
        except Exception:
            logger.warning("Qdrant unreachable at startup -- will retry on requests")
    else:
        logger.info("QDRANT_URL not set -- knowledge retrieval disabled, using static shops")
        app.state.knowledge = None
        directory = StaticShopDirectory()

    evaluator = RecommendationEvaluator(directory)

    # Durable conversations -- optional
    from cleaners.config import DATABASE_URL

    app.state.conversation_store = None
    if DATABASE_URL:
        from cleaners.adapters.conversation_store import SQLConversationStore

        try:
            store = SQLConversationStore(DATABASE_URL)
            store.create_tables()
            app.state.conversation_store = store
            logger.info("Conversation store connected")
        except Exception:
            logger.exception("Conversation store unavailable -- running session-memory-only")
    else:
        logger.info("DATABASE_URL not set -- running session-memory-only")

    # Orchestrator
    from cleaners.services.chat import ChatService

    app.state.chat = ChatService(
        session_store=app.state.session_store,
        gateway=gateway,
        evaluator=evaluator,
        retriever=app.state.knowledge,
        conversation_store=app.state.conversation_store,
    )

    logger.info("Cleaners API ready")
    yield
    logger.info("Cleaners API shutting down")
    app.state.session_store.close()


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title="Cleaners",
        description="Laundry-advice chat API with partner shop recommendations",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.add_middleware(LatencyMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
