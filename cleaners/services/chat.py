"""
Chat turn orchestration.

Runs one user turn end to end: record the message, pull best-effort
knowledge context, call the model with prior turns, record the reply, and
decide whether to suggest a partner shop.

Only GatewayError and StoreUnavailable fail a turn. Retrieval, shop lookup
and durable mirroring all degrade to neutral values.
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from cleaners.api.metrics import (
    observe_llm_duration,
    record_chat_turn,
    record_fallback,
    record_recommendation,
)
from cleaners.config import get_logger
from cleaners.core import (
    ANONYMOUS,
    LAUNDRY_MASTER_PROMPT,
    EmptyInput,
    GatewayError,
    ProcessState,
    RecommendationResult,
    Role,
    SessionMessage,
    UserContext,
    build_system_prompt,
    split_prior_turns,
)
from cleaners.services.knowledge import NullKnowledgeRetriever
from cleaners.utils import timed_operation

if TYPE_CHECKING:
    from cleaners.adapters.conversation_store import SQLConversationStore
    from cleaners.adapters.llm import ModelGateway
    from cleaners.services.knowledge import KnowledgeRetriever
    from cleaners.services.session_store import SessionStore
    from cleaners.services.shops import RecommendationEvaluator

logger = get_logger(__name__)

# Durable conversation titles are cut from the opening message
_TITLE_MAX_CHARS = 50


def _check_deadline(deadline: float | None, stage: str) -> None:
    if deadline is not None and time.monotonic() >= deadline:
        raise GatewayError(f"Request deadline passed before {stage}", timed_out=True)


class _TurnState:
    """Per-request state tracker; logs each transition at debug level."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.state = ProcessState.RECEIVED
        logger.debug("[%s] %s", session_id, self.state.value)

    def advance(self, state: ProcessState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Turn already {self.state.value}; cannot move to {state.value}")
        self.state = state
        logger.debug("[%s] %s", self.session_id, state.value)


class ChatService:
    """
    Message orchestrator for the laundry assistant.

    Collaborators are injected; only the session store, gateway and
    evaluator are required.

    Args:
        session_store: Bounded per-session memory.
        gateway: Hosted model used to produce replies.
        evaluator: Recommendation policy plus shop directory.
        retriever: Knowledge context source. Defaults to no context.
        conversation_store: Optional durable history mirror.
        system_prompt: Persona instruction prepended to every request.
    """

    def __init__(
        self,
        session_store: SessionStore,
        gateway: ModelGateway,
        evaluator: RecommendationEvaluator,
        retriever: KnowledgeRetriever | None = None,
        conversation_store: SQLConversationStore | None = None,
        system_prompt: str = LAUNDRY_MASTER_PROMPT,
    ):
        self.session_store = session_store
        self.gateway = gateway
        self.evaluator = evaluator
        self.retriever = retriever or NullKnowledgeRetriever()
        self.conversation_store = conversation_store
        self.system_prompt = system_prompt

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    def process_message(
        self,
        user_message: str,
        session_id: str = "",
        location: str = "",
        user: UserContext = ANONYMOUS,
        deadline: float | None = None,
    ) -> RecommendationResult:
        """
        Process one user turn.

        Args:
            user_message: The user's text. Must not be blank.
            session_id: Existing session, or "" to start a new one.
            location: Location key (zipcode) for shop suggestions.
            user: Caller identity for durable history.
            deadline: Optional ``time.monotonic()`` cutoff. Once passed, the
                turn fails with a timed-out GatewayError before the model
                is called or before the reply is recorded.

        Returns:
            RecommendationResult with the reply, any suggested shops, and
            the session the turn was recorded under.

        Raises:
            EmptyInput: If the message is blank. Nothing is recorded.
            GatewayError: If the model call fails or the deadline passes.
                The user message stays in the session; no assistant reply
                is recorded.
            StoreUnavailable: If session memory cannot be used.
        """
        if not user_message or not user_message.strip():
            record_chat_turn("rejected")
            raise EmptyInput()

        if not session_id:
            session_id = uuid.uuid4().hex
        turn = _TurnState(session_id)

        try:
            self.session_store.add_message(session_id, Role.USER, user_message)
            conversation_id = self._mirror_user_message(session_id, user, user_message)

            context = self._retrieve_context(user_message)
            turn.advance(ProcessState.CONTEXT_RETRIEVED)

            history = self.session_store.get_history(session_id)
            prior_turns = split_prior_turns(history, user_message)
            system_prompt = build_system_prompt(context, base_prompt=self.system_prompt)

            _check_deadline(deadline, "model call")
            reply = self._complete(system_prompt, prior_turns, user_message)
            turn.advance(ProcessState.MODEL_INVOKED)
            _check_deadline(deadline, "recording the reply")

            self.session_store.add_message(session_id, Role.ASSISTANT, reply)
            self._mirror_message(conversation_id, Role.ASSISTANT, reply)
        except Exception:
            turn.advance(ProcessState.FAILED)
            record_chat_turn("failed")
            raise

        shops = self._recommend(user_message, location)
        turn.advance(ProcessState.COMPLETED)
        record_chat_turn("completed")

        return RecommendationResult(
            message=reply,
            recommended_shops=tuple(shops),
            session_id=session_id,
        )

    def clear_session(self, session_id: str) -> None:
        """Forget a session's memory. Durable history is kept."""
        self.session_store.clear_session(session_id)

    def history(self, session_id: str) -> list[SessionMessage]:
        """Read-only copy of a session's memory."""
        return self.session_store.get_history(session_id)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _retrieve_context(self, query: str) -> str:
        try:
            return self.retriever.get_context(query) or ""
        except Exception:
            logger.warning("Knowledge retrieval failed; continuing without context", exc_info=True)
            record_fallback("retrieval")
            return ""

    def _complete(self, system_prompt, prior_turns, user_message) -> str:
        try:
            with timed_operation("LLM completion", logger, observe_llm_duration):
                return self.gateway.complete(system_prompt, prior_turns, user_message)
        except GatewayError:
            raise
        except Exception as e:
            raise GatewayError(f"Model gateway failed: {e}", kind=GatewayError.TRANSPORT) from e

    def _recommend(self, user_message: str, location: str) -> list:
        # Success-rate signal is not available yet; 0 means "no signal"
        if not self.evaluator.should_recommend(user_message, 0):
            record_recommendation("not_triggered")
            return []
        if not location:
            record_recommendation("no_location")
            return []
        shops = self.evaluator.get_shops_by_location(location)
        record_recommendation("recommended" if shops else "no_shops")
        return shops

    # ------------------------------------------------------------------
    # Durable mirroring
    # ------------------------------------------------------------------

    def _mirror_user_message(
        self,
        session_id: str,
        user: UserContext,
        user_message: str,
    ) -> str | None:
        """Write the user turn to durable history; returns the conversation id."""
        if self.conversation_store is None:
            return None
        try:
            conversation = self.conversation_store.get_or_create_for_session(
                session_id,
                user,
                title=user_message.strip()[:_TITLE_MAX_CHARS],
            )
            self.conversation_store.append_message(conversation.id, Role.USER, user_message)
            return conversation.id
        except Exception:
            logger.warning("Durable history unavailable for session %s", session_id, exc_info=True)
            record_fallback("conversation_store")
            return None

    def _mirror_message(self, conversation_id: str | None, role: Role, content: str) -> None:
        if self.conversation_store is None or conversation_id is None:
            return
        try:
            self.conversation_store.append_message(conversation_id, role, content)
        except Exception:
            logger.warning(
                "Failed to mirror %s message to conversation %s",
                role.value,
                conversation_id,
                exc_info=True,
            )
            record_fallback("conversation_store")


__all__ = ["ChatService"]
