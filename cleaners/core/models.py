"""
Core domain models for the Cleaners chat backend.

All dataclasses are consolidated here for:
- Single source of truth for type definitions
- Easy imports across modules
- Clear domain model documentation

Models are organized by domain area.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


# ============================================================================
# CONVERSATION MODELS
# ============================================================================


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class SessionMessage:
    """
    A single turn held in session memory.

    Immutable once created. Sessions only ever hold user and assistant
    turns; the system prompt is assembled per request.
    """

    role: Role
    content: str

    def to_chat_turn(self) -> dict[str, str]:
        """Render as an OpenAI-style chat message dict."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class UserContext:
    """
    Identity of the caller, threaded through the request.

    ``user_id`` is None for unauthenticated callers; use ``anonymous()``
    rather than inventing a sentinel id.
    """

    user_id: str | None = None

    @classmethod
    def anonymous(cls) -> UserContext:
        return cls(user_id=None)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    @property
    def owner_key(self) -> str:
        """Stable key for durable storage ownership."""
        return self.user_id if self.user_id is not None else "anonymous"


ANONYMOUS = UserContext.anonymous()


class ProcessState(Enum):
    """Lifecycle of a single process_message call."""

    RECEIVED = "received"
    CONTEXT_RETRIEVED = "context_retrieved"
    MODEL_INVOKED = "model_invoked"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessState.COMPLETED, ProcessState.FAILED)


# ============================================================================
# RECOMMENDATION MODELS
# ============================================================================


@dataclass(frozen=True)
class PartnerShop:
    """
    A partner cleaner shop that can be suggested to the user.

    Reference data sourced from the shop directory; never mutated here.
    """

    name: str
    zipcode: str
    priority: str
    rating: float
    specialties: frozenset[str] = field(default_factory=frozenset)
    subscription_status: str = "active"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "zipcode": self.zipcode,
            "priority": self.priority,
            "rating": self.rating,
            "specialties": sorted(self.specialties),
            "subscription_status": self.subscription_status,
        }


@dataclass(frozen=True)
class RecommendationResult:
    """
    Outcome of a successful chat turn.

    ``session_id`` echoes the session the turn was recorded under, which
    is freshly generated when the caller did not supply one.
    """

    message: str
    recommended_shops: tuple[PartnerShop, ...] = ()
    session_id: str = ""


# ============================================================================
# KNOWLEDGE MODELS
# ============================================================================


@dataclass
class KnowledgeItem:
    """
    A laundry knowledge article stored in the vector index.

    Retrieved items are formatted into the context block that grounds
    the assistant's answer.
    """

    id: str
    title: str
    content: str
    category: str = "general"
    tags: list[str] = field(default_factory=list)
    status: str = "active"
    score: float | None = None

    def to_payload(self) -> dict:
        return {
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "tags": list(self.tags),
            "status": self.status,
        }


# ============================================================================
# DURABLE CONVERSATION MODELS
# ============================================================================


@dataclass
class Conversation:
    """A durably stored conversation owned by a user."""

    id: str
    user_id: str
    title: str
    language: str
    created_at: datetime
    updated_at: datetime
    session_id: str | None = None


@dataclass
class StoredMessage:
    """A durably stored message belonging to a conversation."""

    id: str
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
