"""
Shared utility functions.
"""

from __future__ import annotations

import importlib
import threading
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from types import ModuleType
from typing import TYPE_CHECKING, Callable, Generator, TypeVar

if TYPE_CHECKING:
    import logging

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Import Utilities
# ---------------------------------------------------------------------------


def require_import(
    package: str,
    *,
    pip_name: str | None = None,
) -> ModuleType:
    """Import a package with a standardized error message.

    Usage:
        openai = require_import("openai")
        qdrant = require_import("qdrant_client", pip_name="qdrant-client")

    Args:
        package: The Python package name to import.
        pip_name: The pip install name if different from package name.

    Returns:
        The imported module.

    Raises:
        ImportError: With a helpful message including install command.
    """
    try:
        return importlib.import_module(package)
    except ImportError as e:
        raise ImportError(
            f"{package} package required. Install with: pip install {pip_name or package}"
        ) from e


# ---------------------------------------------------------------------------
# Singleton Utilities
# ---------------------------------------------------------------------------


def thread_safe_singleton(factory_fn: Callable[[], T]) -> Callable[[], T]:
    """Decorator for thread-safe lazy singleton initialization.

    Usage:
        @thread_safe_singleton
        def get_client():
            return QdrantClient(...)

    The wrapper exposes ``reset()`` so tests can drop the cached instance.
    """
    instance: T | None = None
    lock = threading.Lock()

    @wraps(factory_fn)
    def get_instance() -> T:
        nonlocal instance
        if instance is None:
            with lock:
                if instance is None:
                    instance = factory_fn()
        return instance

    def reset() -> None:
        nonlocal instance
        with lock:
            instance = None

    get_instance.reset = reset  # type: ignore[attr-defined]
    return get_instance


@contextmanager
def timed_operation(
    name: str,
    logger: logging.Logger | None = None,
    metrics_observer: Callable[[float], None] | None = None,
    log_format: str = "%s: %.0fms",
) -> Generator[None, None, None]:
    """Context manager for timing operations with optional logging and metrics.

    Usage:
        with timed_operation("LLM completion", logger, observe_llm_duration):
            reply = gateway.complete(...)

    Args:
        name: Operation name for logging.
        logger: Logger instance for info-level timing output.
        metrics_observer: Callback that receives duration in seconds.
        log_format: Format string for log message (name, ms).
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - t0
        if metrics_observer is not None:
            metrics_observer(duration)
        if logger is not None:
            logger.info(log_format, name, duration * 1000)


# ---------------------------------------------------------------------------
# Time and Identifiers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Random UUID4 string, used for knowledge items and stored conversations."""
    return str(uuid.uuid4())
