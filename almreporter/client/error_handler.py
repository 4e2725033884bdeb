"""
Reusable decorator for handling ALM REST API exceptions.

Maps ``requests`` failures onto the client exception hierarchy so callers
only ever deal with ``ALMClientError`` subclasses.
"""

import functools
import logging
from typing import Any, Callable, Optional

import requests

from .exceptions import (
    ALMClientError,
    APIConnectionError,
    APINotFoundError,
    APIServerError,
    APITimeoutError,
    AuthenticationError,
    RestrictedEnvironmentError,
)


def handle_api_errors(
    operation: str,
    return_on_error: Any = None,
    log_stats: bool = True,
    suppress_errors: bool = False,
):
    """
    Decorator that translates REST API failures into client exceptions.

    Usage:
        @handle_api_errors(operation="get projects")
        def get_projects(self):
            response = self.session.get(url)
            response.raise_for_status()
            return response.json()

    Args:
        operation: Human-readable name of the API operation
        return_on_error: Value to return when an error is suppressed
        log_stats: Whether to increment self.stats["errors"] on failure
        suppress_errors: If True, return the fallback value; if False, raise

    Returns:
        Decorated function that raises (or suppresses) ALMClientError
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            logger = getattr(self, "logger", logging.getLogger(func.__name__))
            stats = getattr(self, "stats", None) if log_stats else None

            try:
                return func(self, *args, **kwargs)

            except ALMClientError as e:
                error, log_level = e, "warning"

            except requests.exceptions.Timeout as e:
                error = APITimeoutError(
                    message=f"Timeout while calling {operation}",
                    endpoint=operation,
                    timeout_duration=getattr(self, "timeout", None),
                    original_exception=e,
                )
                log_level = "warning"

            except requests.exceptions.SSLError as e:
                error = APIConnectionError(
                    message=f"TLS handshake failed for {operation}",
                    endpoint=operation,
                    original_exception=e,
                    suggested_action=(
                        "The server certificate is not trusted. Run "
                        "'almreporter test-connection' to review it"
                    ),
                )
                log_level = "error"

            except requests.exceptions.ConnectionError as e:
                error = RestrictedEnvironmentError.detect(e, endpoint=operation)
                log_level = "warning"

            except requests.exceptions.HTTPError as e:
                error, log_level = _create_http_exception(e, operation)

            except requests.exceptions.RequestException as e:
                error = ALMClientError(
                    message=f"Request failed for {operation}",
                    endpoint=operation,
                    original_exception=e,
                    suggested_action="Check network connectivity and retry",
                )
                log_level = "error"

            except (ValueError, KeyError, TypeError) as e:
                # Malformed JSON or a response missing expected fields
                error = ALMClientError(
                    message=f"Unexpected response from {operation}",
                    endpoint=operation,
                    original_exception=e,
                )
                log_level = "error"

            return _handle_error(
                error=error,
                logger=logger,
                log_level=log_level,
                stats=stats,
                suppress=suppress_errors,
                return_value=return_on_error,
            )

        return wrapper

    return decorator


def _create_http_exception(
    http_error: requests.exceptions.HTTPError,
    operation: str,
) -> tuple[ALMClientError, str]:
    """
    Map an HTTP error to a specific exception and log level.

    Args:
        http_error: The HTTP error exception
        operation: Name of the API operation that failed

    Returns:
        Tuple of (exception, log_level)
    """
    response = http_error.response
    status_code = response.status_code if response is not None else None
    detail = _error_detail(response)

    if status_code in (401, 403):
        return (
            AuthenticationError(
                message=detail or f"Not authorized to {operation}",
                endpoint=operation,
                status_code=status_code,
                original_exception=http_error,
            ),
            "warning",
        )

    if status_code == 404:
        return (
            APINotFoundError(
                message=detail or f"Resource not found for {operation}",
                endpoint=operation,
                original_exception=http_error,
            ),
            "debug",
        )

    if status_code and 500 <= status_code < 600:
        return (
            APIServerError(
                message=detail or f"REST API server error during {operation}",
                endpoint=operation,
                status_code=status_code,
                original_exception=http_error,
            ),
            "error",
        )

    return (
        APIConnectionError(
            message=detail or f"HTTP error calling {operation}",
            endpoint=operation,
            status_code=status_code,
            original_exception=http_error,
        ),
        "error",
    )


def _error_detail(response: Optional[requests.Response]) -> Optional[str]:
    """Extract the server's error message from a JSON error body, if any."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message") or body.get("error")
    return None


def _handle_error(
    error: ALMClientError,
    logger: logging.Logger,
    log_level: str,
    stats: Optional[dict],
    suppress: bool,
    return_value: Any,
):
    """
    Log the error, update stats, then return the fallback or raise.

    Raises:
        The error if suppress=False
    """
    log_message = str(error)

    if log_level == "debug":
        logger.debug(log_message)
    elif log_level == "warning":
        logger.warning(log_message)
    else:
        logger.error(log_message)

    if stats is not None and "errors" in stats:
        stats["errors"] += 1

    if suppress:
        return return_value
    raise error


__all__ = ["handle_api_errors"]
