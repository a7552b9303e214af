"""Langfuse tracing configuration."""

import logging
from functools import lru_cache

from langfuse import Langfuse

from autoapply.config import settings

logger = logging.getLogger(__name__)


@lru_cache
def get_langfuse() -> Langfuse | None:
    """
    Get Langfuse client instance.

    Returns:
        Langfuse client if configured, None otherwise.
    """
    if not settings.langfuse_secret_key or not settings.langfuse_public_key:
        return None

    return Langfuse(
        secret_key=settings.langfuse_secret_key,
        public_key=settings.langfuse_public_key,
        host=settings.langfuse_base_url,
    )


def is_tracing_enabled() -> bool:
    return get_langfuse() is not None


def flush_langfuse() -> None:
    """Flush pending Langfuse traces (call at the end of a run)."""
    client = get_langfuse()
    if client:
        client.flush()
