import asyncio
from functools import wraps
from typing import Tuple, Type

import structlog

logger = structlog.get_logger()

def retry(
    tries: int = 3,
    delay: float = 1,
    backoff: float = 2,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
):
    """Retry an async callable with exponential backoff.

    Only ``exceptions`` are retried; anything else (cancellation included)
    propagates on the first attempt.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 1
            current_delay = delay
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Retry attempt failed", func=func.__qualname__, attempt=attempt, tries=tries, error=str(e))
                    if attempt >= tries:
                        raise
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff
                    attempt += 1
        return wrapper
    return decorator
