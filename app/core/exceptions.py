"""Application exceptions.

HTTP-facing errors subclass ``HTTPException`` so FastAPI renders them directly.
Domain errors are plain exceptions raised by the scanning pipeline; the API
layer translates the ones that reach it.
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Internal error", **extra):
        body: dict = {"error": detail}
        body.update({k: v for k, v in extra.items() if v is not None})
        super().__init__(status_code=self.status_code, detail=body)


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


# ── Domain errors ──────────────────────────────────────────────────────


class ConfigurationError(Exception):
    """Required configuration (provider credentials, schedule) is missing.

    Terminal for the request that hit it: nothing is scanned or written.
    """


class ProviderError(Exception):
    """A single AI provider call failed (credentials, HTTP status, transport)."""

    def __init__(self, provider: str, message: str, http_status: int | None = None):
        self.provider = provider
        self.message = message
        self.http_status = http_status
        prefix = f"{provider} HTTP {http_status}" if http_status else provider
        super().__init__(f"{prefix}: {message}")


class PersistenceError(Exception):
    """Writing a scan result or keyword aggregate failed."""


class SchedulingError(Exception):
    """A keyword scan failed inside an automated run."""

    def __init__(self, brand_id: int, keyword_id: int, cause: Exception):
        self.brand_id = brand_id
        self.keyword_id = keyword_id
        self.cause = cause
        super().__init__(f"brand={brand_id} keyword={keyword_id}: {cause}")


class QueueStateError(Exception):
    """Illegal scan queue status transition."""

    def __init__(self, item_id: int | None, current: str, target: str):
        self.item_id = item_id
        self.current = current
        self.target = target
        super().__init__(f"Queue item {item_id}: cannot move from {current!r} to {target!r}")
