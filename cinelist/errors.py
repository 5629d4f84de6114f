import enum
from datetime import datetime, timezone

from fastapi import Request, status
from fastapi.responses import JSONResponse


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    VALIDATION_FAILED = "validation_failed"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    RATE_LIMITED = "rate_limited"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UPSTREAM_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.RESOURCE_EXHAUSTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}


class DomainError(Exception):
    """A failure the service layer reports to its caller.

    ``kind`` is the closed category used for status mapping; ``code`` is the
    stable machine-readable identifier clients switch on.
    """

    def __init__(
        self,
        kind: ErrorKind,
        code: str,
        message: str,
        details: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.message = message
        self.details = details or []

    def __repr__(self) -> str:
        return f"DomainError({self.kind.value}, {self.code!r})"


def list_not_found() -> DomainError:
    return DomainError(ErrorKind.NOT_FOUND, "LIST_NOT_FOUND", "List not found.")


def not_a_member() -> DomainError:
    return DomainError(
        ErrorKind.FORBIDDEN, "NOT_A_MEMBER", "You are not a member of this list."
    )


def movie_not_in_list() -> DomainError:
    return DomainError(
        ErrorKind.NOT_FOUND, "MOVIE_NOT_IN_LIST", "Movie not found in this list."
    )


def validation_failed(code: str, message: str) -> DomainError:
    return DomainError(ErrorKind.VALIDATION_FAILED, code, message, [message])


def rate_limited(message: str) -> DomainError:
    return DomainError(ErrorKind.RATE_LIMITED, "RATE_LIMITED", "Rate limited.", [message])


def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND[exc.kind],
        content={
            "error": exc.message,
            "code": exc.code,
            "details": exc.details,
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        },
        headers={"Cache-Control": "no-store"},
    )
