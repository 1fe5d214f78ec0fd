"""
Retry helper for transient Supabase connection errors.

PostgREST connections occasionally get reset by the peer under idle
timeouts; those queries are safe to repeat.
"""
import time
import logging
from typing import Callable, Any

logger = logging.getLogger(__name__)

TRANSIENT_MARKERS = ("connection reset", "errno 104", "server disconnected")


def is_transient(error: Exception) -> bool:
    """Whether the error looks like a dropped connection"""
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def retry_supabase_query(
    query_func: Callable[[], Any],
    max_retries: int = 3,
    base_delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep
) -> Any:
    """
    Execute a Supabase query, retrying transient connection errors.

    Usage:
        result = retry_supabase_query(
            lambda: supabase.table("forms").select("*").execute()
        )

    Args:
        query_func: A callable that executes the Supabase query
        max_retries: Maximum number of retry attempts
        base_delay: First backoff delay in seconds, doubled per attempt (max 4s)
        sleep: Sleep function (replaced in tests)

    Returns:
        The query result
    """
    for attempt in range(max_retries + 1):
        try:
            return query_func()
        except Exception as e:
            if not is_transient(e) or attempt >= max_retries:
                raise
            delay = min(base_delay * (2 ** attempt), 4.0)
            logger.warning(
                f"Supabase connection error, retry {attempt + 1}/{max_retries}. "
                f"Waiting {delay}s..."
            )
            sleep(delay)
