"""
Error kinds returned by the normalization and allocation engine.

Errors are values, not exceptions: the canonicalizer, allocator and
orchestrator return a ``UrlError`` and callers check for it with
``isinstance``. Only the HTTP layer turns one into a raised
``HTTPException``.
"""
from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_URL_SYNTAX = "InvalidUrlSyntax"
    SCHEME_NOT_ALLOWED = "SchemeNotAllowed"
    USER_INFO_NOT_ALLOWED = "UserInfoNotAllowed"
    MISSING_HOST = "MissingHost"
    UNKNOWN_POLICY = "UnknownPolicy"
    NOT_FOUND = "NotFound"
    ALLOCATION_EXHAUSTED = "AllocationExhausted"
    FATAL_STORAGE_ERROR = "FatalStorageError"


# Caller input errors are never retried
VALIDATION_KINDS = frozenset({
    ErrorKind.INVALID_URL_SYNTAX,
    ErrorKind.SCHEME_NOT_ALLOWED,
    ErrorKind.USER_INFO_NOT_ALLOWED,
    ErrorKind.MISSING_HOST,
    ErrorKind.UNKNOWN_POLICY,
})

HTTP_STATUS = {
    ErrorKind.INVALID_URL_SYNTAX: 400,
    ErrorKind.SCHEME_NOT_ALLOWED: 400,
    ErrorKind.USER_INFO_NOT_ALLOWED: 400,
    ErrorKind.MISSING_HOST: 400,
    ErrorKind.UNKNOWN_POLICY: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALLOCATION_EXHAUSTED: 500,
    ErrorKind.FATAL_STORAGE_ERROR: 500,
}


@dataclass(frozen=True)
class UrlError:
    kind: ErrorKind
    message: str

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.kind]

    @property
    def is_validation(self) -> bool:
        return self.kind in VALIDATION_KINDS

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class StorageError(Exception):
    """Raised by a mapping store when a lookup cannot reach the database."""
