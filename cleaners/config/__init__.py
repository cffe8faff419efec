"""
Cleaners configuration module.

Central configuration for the laundry-advice chat backend.
Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"


# ---------------------------------------------------------------------------
# External API Keys
# ---------------------------------------------------------------------------

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")


# ---------------------------------------------------------------------------
# LLM Settings
# ---------------------------------------------------------------------------

PROVIDER_OPENROUTER = "openrouter"
PROVIDER_OPENAI = "openai"
PROVIDER_ANTHROPIC = "anthropic"

LLM_PROVIDER = os.getenv("LLM_PROVIDER", PROVIDER_OPENROUTER).lower().strip()

# Model selection
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "openai/gpt-4.1")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

# Generation settings
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1024"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60.0"))  # Seconds before API timeout


# ---------------------------------------------------------------------------
# Embedding Model
# ---------------------------------------------------------------------------

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIM = int(os.getenv("EMBEDDING_DIM", "1536"))
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30.0"))


# ---------------------------------------------------------------------------
# Qdrant Vector Store
# ---------------------------------------------------------------------------

QDRANT_URL = os.getenv("QDRANT_URL")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_TIMEOUT = int(os.getenv("QDRANT_TIMEOUT", "30"))
KNOWLEDGE_COLLECTION = os.getenv("KNOWLEDGE_COLLECTION", "cleaners_knowledge")
PARTNER_COLLECTION = os.getenv("PARTNER_COLLECTION", "cleaners_partners")

KNOWLEDGE_TOP_K = int(os.getenv("KNOWLEDGE_TOP_K", "3"))
SHOP_LOOKUP_LIMIT = int(os.getenv("SHOP_LOOKUP_LIMIT", "3"))


# ---------------------------------------------------------------------------
# Session Memory
# ---------------------------------------------------------------------------

SESSION_MAX_MESSAGES = int(os.getenv("SESSION_MAX_MESSAGES", "10"))


# ---------------------------------------------------------------------------
# Shop Recommendation
# ---------------------------------------------------------------------------

# Success rates strictly between 0 and this value trigger a recommendation
SUCCESS_RATE_THRESHOLD = int(os.getenv("SUCCESS_RATE_THRESHOLD", "60"))

# Optional JSON file extending the built-in keyword lists
RECOMMEND_KEYWORDS_PATH = os.getenv("RECOMMEND_KEYWORDS_PATH")


# ---------------------------------------------------------------------------
# Durable Conversations
# ---------------------------------------------------------------------------

# Unset means session-memory-only mode
DATABASE_URL = os.getenv("DATABASE_URL")
DEFAULT_CONVERSATION_LANGUAGE = "ko"


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "90.0"))
MAX_MESSAGE_LENGTH = int(os.getenv("MAX_MESSAGE_LENGTH", "4000"))


# ---------------------------------------------------------------------------
# Keyword data
# ---------------------------------------------------------------------------

from cleaners.config.keywords import (  # noqa: E402
    DEFAULT_KEYWORDS,
    RecommendationKeywords,
    load_keywords,
)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

from cleaners.config.logging import (  # noqa: E402
    get_logger,
    configure_logging,
    log_banner,
    log_kv,
    LOG_LEVEL,
    LOG_FORMAT,
)


# ---------------------------------------------------------------------------
# All exports
# ---------------------------------------------------------------------------

__all__ = [
    # Paths
    "PROJECT_ROOT",
    "DATA_DIR",
    # API keys
    "OPENAI_API_KEY",
    "OPENROUTER_API_KEY",
    "ANTHROPIC_API_KEY",
    # LLM
    "PROVIDER_OPENROUTER",
    "PROVIDER_OPENAI",
    "PROVIDER_ANTHROPIC",
    "LLM_PROVIDER",
    "OPENROUTER_MODEL",
    "OPENROUTER_BASE_URL",
    "OPENAI_MODEL",
    "ANTHROPIC_MODEL",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "LLM_TIMEOUT",
    # Embedding
    "EMBEDDING_MODEL",
    "EMBEDDING_DIM",
    "EMBEDDING_TIMEOUT",
    # Qdrant
    "QDRANT_URL",
    "QDRANT_API_KEY",
    "QDRANT_TIMEOUT",
    "KNOWLEDGE_COLLECTION",
    "PARTNER_COLLECTION",
    "KNOWLEDGE_TOP_K",
    "SHOP_LOOKUP_LIMIT",
    # Session memory
    "SESSION_MAX_MESSAGES",
    # Recommendation
    "SUCCESS_RATE_THRESHOLD",
    "RECOMMEND_KEYWORDS_PATH",
    "DEFAULT_KEYWORDS",
    "RecommendationKeywords",
    "load_keywords",
    # Conversations
    "DATABASE_URL",
    "DEFAULT_CONVERSATION_LANGUAGE",
    # API
    "REQUEST_TIMEOUT_SECONDS",
    "MAX_MESSAGE_LENGTH",
    # Logging
    "get_logger",
    "configure_logging",
    "log_banner",
    "log_kv",
    "LOG_LEVEL",
    "LOG_FORMAT",
]
