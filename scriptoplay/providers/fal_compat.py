"""
fal client calling-convention shim.

Releases of the fal client disagree on how status/result methods take the
request id. ``call_with_request_id`` tries each convention in priority order:

    1. keyword ``requestId=``
    2. keyword ``request_id=``
    3. positional ``(application, request_id)``

Only the fal provider imports this module. Delete it, and call the client
directly, once a single signature can be relied on.
"""

import logging
from typing import Any, Awaitable, Callable, List

logger = logging.getLogger(__name__)


def _conventions(application: str, request_id: str, extra: dict) -> List[Callable[[Callable[..., Awaitable[Any]]], Awaitable[Any]]]:
    return [
        lambda method: method(application, requestId=request_id, **extra),
        lambda method: method(application, request_id=request_id, **extra),
        lambda method: method(application, request_id, **extra),
    ]


async def call_with_request_id(
    method: Callable[..., Awaitable[Any]],
    application: str,
    request_id: str,
    **extra: Any,
) -> Any:
    """Call a fal status/result method with the first convention that works."""
    last_error: Exception = RuntimeError("no calling convention attempted")

    for index, convention in enumerate(_conventions(application, request_id, extra), start=1):
        try:
            return await convention(method)
        except Exception as e:
            logger.debug(f"[FalCompat] convention {index} failed for {request_id}: {e}")
            last_error = e

    raise last_error
