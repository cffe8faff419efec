"""
Cleaners: laundry-advice chat backend

Receives user questions about stains and fabric care, grounds them in
retrieved laundry knowledge, answers through a hosted LLM, keeps bounded
per-session memory, and suggests partner cleaner shops when a garment
needs professional care.

Architecture:
    cleaners.core       - Pure domain logic (models, errors, prompts, policy)
    cleaners.adapters   - External service wrappers (LLM, embeddings, Qdrant, SQL)
    cleaners.services   - Orchestration layer (sessions, knowledge, shops, chat)
    cleaners.api        - FastAPI app, routes, middleware, metrics
    cleaners.config     - Configuration settings
"""

__version__ = "0.1.0"

# Expose key public API for convenience imports
from cleaners.core import (
    # Models
    PartnerShop,
    RecommendationResult,
    Role,
    SessionMessage,
    UserContext,
    # Errors
    EmptyInput,
    GatewayError,
    StoreUnavailable,
    # Functions
    should_recommend,
)

from cleaners.services import (
    ChatService,
    RecommendationEvaluator,
    SessionStore,
)

__all__ = [
    # Version
    "__version__",
    # Models
    "PartnerShop",
    "RecommendationResult",
    "Role",
    "SessionMessage",
    "UserContext",
    # Errors
    "EmptyInput",
    "GatewayError",
    "StoreUnavailable",
    # Core functions
    "should_recommend",
    # Services
    "ChatService",
    "RecommendationEvaluator",
    "SessionStore",
]
