"""
Durable conversation store.

Optional SQL persistence for conversation history, independent of the
bounded in-memory session store. The chat service mirrors turns here when
a store is configured; without one the service runs in session-memory-only
mode.

Dependencies: sqlalchemy
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from cleaners.config import DATABASE_URL, DEFAULT_CONVERSATION_LANGUAGE, get_logger
from cleaners.core import Conversation, Role, StoredMessage, StoreUnavailable, UserContext
from cleaners.utils import new_id, utcnow

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# ORM models
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Declarative base for conversation tables."""


class ConversationRow(Base):
    """One conversation thread owned by a user (or the anonymous owner)."""

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="New Chat")
    language: Mapped[str] = mapped_column(String(16), nullable=False, default="ko")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def to_domain(self) -> Conversation:
        return Conversation(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            language=self.language,
            created_at=self.created_at,
            updated_at=self.updated_at,
            session_id=self.session_id,
        )


class MessageRow(Base):
    """A single message in a conversation."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def to_domain(self) -> StoredMessage:
        return StoredMessage(
            id=str(self.id),
            conversation_id=self.conversation_id,
            role=Role(self.role),
            content=self.content,
            created_at=self.created_at,
        )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    In-memory SQLite uses a single shared connection so every session
    sees the same database.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


class SQLConversationStore:
    """
    Conversation repository over SQLAlchemy.

    All public methods raise StoreUnavailable when the database fails so
    callers can treat the store as an optional collaborator.
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None):
        url = database_url or DATABASE_URL
        if engine is None and not url:
            raise ValueError("DATABASE_URL is required for SQLConversationStore")
        self.engine = engine or create_db_engine(url)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        """Create tables if missing."""
        Base.metadata.create_all(self.engine)

    def _session(self) -> Session:
        return self._session_factory()

    def create(
        self,
        user: UserContext,
        title: str = "New Chat",
        language: str = DEFAULT_CONVERSATION_LANGUAGE,
        session_id: str | None = None,
    ) -> Conversation:
        """Create a conversation owned by ``user``."""
        try:
            with self._session() as db, db.begin():
                row = ConversationRow(
                    user_id=user.owner_key,
                    title=title,
                    language=language,
                    session_id=session_id,
                )
                db.add(row)
                db.flush()
                return row.to_domain()
        except IntegrityError as e:
            # Another request bound this session first
            existing = self._find_by_session(session_id) if session_id else None
            if existing is None:
                raise StoreUnavailable(f"Failed to create conversation: {e}") from e
            logger.debug("Reusing conversation %s for session %s", existing.id, session_id)
            return existing
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to create conversation: {e}") from e

    def get_or_create_for_session(
        self,
        session_id: str,
        user: UserContext,
        title: str = "New Chat",
    ) -> Conversation:
        """Return the conversation bound to a chat session, creating it if needed."""
        existing = self._find_by_session(session_id)
        if existing is not None:
            return existing
        return self.create(user, title=title, session_id=session_id)

    def _find_by_session(self, session_id: str) -> Conversation | None:
        try:
            with self._session() as db:
                row = db.scalars(
                    select(ConversationRow).where(ConversationRow.session_id == session_id)
                ).first()
                return row.to_domain() if row is not None else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to load conversation: {e}") from e

    def append_message(self, conversation_id: str, role: Role, content: str) -> StoredMessage:
        """Append a message and bump the conversation's updated_at."""
        try:
            with self._session() as db, db.begin():
                conversation = db.get(ConversationRow, conversation_id)
                if conversation is None:
                    raise StoreUnavailable(f"Conversation {conversation_id} not found")
                row = MessageRow(conversation_id=conversation_id, role=role.value, content=content)
                db.add(row)
                conversation.updated_at = utcnow()
                db.flush()
                return row.to_domain()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to append message: {e}") from e

    def list_by_user(self, user: UserContext) -> list[Conversation]:
        """List a user's conversations, most recently updated first."""
        try:
            with self._session() as db:
                rows = db.scalars(
                    select(ConversationRow)
                    .where(ConversationRow.user_id == user.owner_key)
                    .order_by(ConversationRow.updated_at.desc())
                ).all()
                return [row.to_domain() for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to list conversations: {e}") from e

    def list_messages(self, conversation_id: str) -> list[StoredMessage]:
        """List a conversation's messages in insertion order."""
        try:
            with self._session() as db:
                rows = db.scalars(
                    select(MessageRow)
                    .where(MessageRow.conversation_id == conversation_id)
                    .order_by(MessageRow.id)
                ).all()
                return [row.to_domain() for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Failed to list messages: {e}") from e

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._session() as db:
                db.execute(select(1))
            return True
        except SQLAlchemyError:
            return False


__all__ = [
    "Base",
    "ConversationRow",
    "MessageRow",
    "SQLConversationStore",
    "create_db_engine",
]
