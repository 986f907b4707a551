import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def run_detached(description: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Any]:
    """
    Run a best-effort side effect (cleanup, rollback) whose failure must not
    change the caller's result. Failures are logged and swallowed; the return
    value is whatever `fn` returned, or None when it raised.
    """
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        logger.warning(f"Detached operation failed ({description}): {e!r}")
        return None
