"""
Chat error handling utilities.

Decorator that maps chat engine exceptions to HTTPExceptions carrying the
stable ``{"code", "message"}`` error payload.
"""

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import HTTPException, status

from chat_engine.core.exceptions import ChatEngineException, TurnFailureError

logger = logging.getLogger(__name__)

# Type for the decorated function
F = TypeVar("F", bound=Callable[..., Any])


def handle_chat_errors(func: F) -> F:
    """
    Decorator to handle chat engine errors and transform them into HTTPExceptions.

    This centralizes:
    - Logging of errors with context (code, details)
    - Mapping each error kind to its HTTP status code
    - Ensuring uniform error response formats
    """
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)

        except HTTPException:
            raise

        except TurnFailureError as e:
            # Already logged with traceback by the turn executor
            logger.warning(
                "Turn failed",
                extra={"code": e.code, "details": e.details},
            )
            raise HTTPException(status_code=e.status_code, detail=e.to_dict())

        except ChatEngineException as e:
            logger.warning(
                "Chat request rejected",
                extra={"code": e.code, "details": e.details},
            )
            raise HTTPException(status_code=e.status_code, detail=e.to_dict())

        except Exception as e:
            logger.exception(
                "Unexpected failure in chat operation",
                extra={"error": str(e)},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={"code": "unexpected_failure", "message": "An internal error occurred"},
            )

    return wrapper  # type: ignore
