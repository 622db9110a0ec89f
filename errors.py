"""
Error taxonomy for DoseTrack

Collaborator calls (database, email, storage, auth) never raise to their
callers. They return a Result carrying either a value or an error message
plus an ErrorKind, and the HTTP layer turns the kind into a status code and
guidance text for the user.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Generic, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError

from config import settings


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Categories of failure surfaced to users"""
    NOT_CONFIGURED = "not_configured"
    CONNECTIVITY = "connectivity"
    TIMEOUT = "timeout"
    PERMISSION = "permission"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"


GUIDANCE = {
    ErrorKind.NOT_CONFIGURED: "This feature is not configured on the server. Ask the operator to check the deployment settings.",
    ErrorKind.CONNECTIVITY: "Network error. Please check your internet connection and try again.",
    ErrorKind.TIMEOUT: "Request timed out. Please check your internet connection and try again.",
    ErrorKind.PERMISSION: "Permission denied. The operator needs to review the access rules for this account.",
    ErrorKind.VALIDATION: "Some required information is missing or invalid.",
    ErrorKind.NOT_FOUND: "The requested item could not be found.",
}

HTTP_STATUS = {
    ErrorKind.NOT_CONFIGURED: 503,
    ErrorKind.CONNECTIVITY: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.PERMISSION: 403,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
}


class ServiceError(Exception):
    """Raised inside services; converted to a Result at the boundary"""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or GUIDANCE[kind]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


@dataclass
class Result(Generic[T]):
    """Value-or-error returned by collaborator calls"""
    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: Optional[str] = None) -> "Result":
        return cls(error=message or GUIDANCE[kind], kind=kind)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Result":
        if isinstance(exc, ServiceError):
            return cls(error=exc.message, kind=exc.kind)
        kind = classify_error(exc)
        return cls(error=GUIDANCE[kind] if kind != ErrorKind.VALIDATION else str(exc), kind=kind)


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an arbitrary exception onto the error taxonomy"""
    if isinstance(exc, ServiceError):
        return exc.kind
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION
    if isinstance(exc, (OperationalError, ConnectionError, OSError)):
        return ErrorKind.CONNECTIVITY
    if isinstance(exc, DBAPIError):
        return ErrorKind.CONNECTIVITY

    message = str(exc).lower()
    if "permission" in message:
        return ErrorKind.PERMISSION
    if "timed out" in message or "timeout" in message:
        return ErrorKind.TIMEOUT
    if "network" in message or "unavailable" in message:
        return ErrorKind.CONNECTIVITY
    if isinstance(exc, (ValueError, KeyError, TypeError)):
        return ErrorKind.VALIDATION
    return ErrorKind.CONNECTIVITY


async def with_timeout(awaitable: Awaitable[T], timeout: Optional[float] = None) -> T:
    """Bound a collaborator call; never retried automatically"""
    seconds = timeout if timeout is not None else settings.OPERATION_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"Operation exceeded {seconds}s bound")
        raise ServiceError(ErrorKind.TIMEOUT)
