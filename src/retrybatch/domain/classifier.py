"""Error classification for retry decisions.

Errors raised by HTTP clients, sockets and storage SDKs come in many shapes.
``extract_failure_info`` maps any of them onto a ``FailureInfo`` so that
``is_retryable`` only ever deals with two strings.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import socket
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from retrybatch.domain.models.failure import FailureInfo

logger = logging.getLogger(__name__)

# Connection reset, timeout, DNS not found, rate limiting and 429/503/504
DEFAULT_RETRYABLE_PATTERNS: tuple[str, ...] = (
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
    "Rate limit",
    "429",
    "503",
    "504",
)


def _as_text(value: Any) -> str:
    """Convert a best-effort field to a string ('' for missing values)"""
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    try:
        return str(value)
    except Exception:
        return ""


def _first_text(*values: Any) -> str:
    for value in values:
        text = _as_text(value)
        if text:
            return text
    return ""


def _response_status(response: Any) -> str:
    """Status of a nested HTTP response (requests/httpx or aiohttp style)"""
    if response is None:
        return ""
    if isinstance(response, Mapping):
        return _first_text(response.get("status"), response.get("status_code"))
    return _first_text(
        getattr(response, "status_code", None),
        getattr(response, "status", None),
    )


def _os_error_code(error: BaseException) -> str:
    """Symbolic code for socket and timeout errors"""
    if isinstance(error, socket.gaierror):
        return "ENOTFOUND"
    if isinstance(error, OSError) and isinstance(error.errno, int):
        name = errno.errorcode.get(error.errno)
        if name:
            return name
    if isinstance(error, ConnectionResetError):
        return "ECONNRESET"
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return "ETIMEDOUT"
    return ""


def extract_failure_info(error: Any) -> FailureInfo:
    """Extract message and code from any error representation

    Args:
        error: Exception, string, mapping, None or any other object

    Returns:
        FailureInfo; fields that cannot be extracted are empty strings
    """
    if error is None:
        return FailureInfo()

    if isinstance(error, str):
        return FailureInfo(message=error)

    if isinstance(error, Mapping):
        return FailureInfo(
            message=_as_text(error.get("message")),
            code=_first_text(
                error.get("code"),
                error.get("status_code"),
                error.get("status"),
                _response_status(error.get("response")),
            ),
        )

    message = _first_text(getattr(error, "message", None), error)
    code = _first_text(
        getattr(error, "code", None),
        getattr(error, "status_code", None),
        getattr(error, "status", None),
        _response_status(getattr(error, "response", None)),
    )
    if not code and isinstance(error, BaseException):
        code = _os_error_code(error)

    return FailureInfo(message=message, code=code)


def is_retryable(error: Any, patterns: Optional[Iterable[str]] = None) -> bool:
    """Check if a failure should be retried

    Any pattern occurring as a substring of the message or of the code wins.
    Matching is case-sensitive; empty patterns never match.

    Args:
        error: Failure raised by the operation
        patterns: Retryable patterns (defaults to DEFAULT_RETRYABLE_PATTERNS)

    Returns:
        True if error is transient
    """
    if patterns is None:
        patterns = DEFAULT_RETRYABLE_PATTERNS

    info = extract_failure_info(error)
    if info.is_empty:
        return False

    for pattern in patterns:
        if pattern and (pattern in info.message or pattern in info.code):
            logger.debug(f"Error matches retryable pattern {pattern!r}: {info.message or info.code}")
            return True
    return False
