"""
Cleaners core domain layer.

Pure domain logic with no external service dependencies.
Contains models, errors, prompt assembly, and the recommendation policy.
"""

# Models
from cleaners.core.models import (
    ANONYMOUS,
    Conversation,
    KnowledgeItem,
    PartnerShop,
    ProcessState,
    RecommendationResult,
    Role,
    SessionMessage,
    StoredMessage,
    UserContext,
)

# Errors
from cleaners.core.errors import (
    CleanersError,
    EmptyInput,
    GatewayError,
    RetrievalError,
    ShopLookupError,
    StoreUnavailable,
)

# Prompts
from cleaners.core.prompts import (
    LAUNDRY_MASTER_PROMPT,
    build_chat_messages,
    build_system_prompt,
    format_knowledge_context,
    split_prior_turns,
)

# Recommendation policy
from cleaners.core.recommendation import (
    contains_any,
    should_recommend,
    success_rate_is_low,
)

__all__ = [
    # Models
    "ANONYMOUS",
    "Conversation",
    "KnowledgeItem",
    "PartnerShop",
    "ProcessState",
    "RecommendationResult",
    "Role",
    "SessionMessage",
    "StoredMessage",
    "UserContext",
    # Errors
    "CleanersError",
    "EmptyInput",
    "GatewayError",
    "RetrievalError",
    "ShopLookupError",
    "StoreUnavailable",
    # Prompts
    "LAUNDRY_MASTER_PROMPT",
    "build_chat_messages",
    "build_system_prompt",
    "format_knowledge_context",
    "split_prior_turns",
    # Recommendation
    "contains_any",
    "should_recommend",
    "success_rate_is_low",
]
