from uuid import UUID

import jwt
from fastapi import Header

from app.core.config import settings
from app.core.exceptions import UnauthorizedError
from app.core.security import decode_token


async def get_current_user_id(
    authorization: str = Header(..., description="Bearer <token>"),
) -> UUID:
    """Resolve the calling user's id from the bearer token.

    Accounts live in the identity service; this service only trusts the
    ``sub`` claim of a token signed with the shared secret.
    """
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid authorization header")

    token = authorization[7:]
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired token")

    if payload.get("type") != "access":
        raise UnauthorizedError("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")

    try:
        return UUID(user_id)
    except ValueError:
        raise UnauthorizedError("Invalid token payload")


async def verify_cron_secret(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
) -> None:
    """Guard for the scheduler trigger. No-op when CRON_SECRET is unset."""
    if settings.cron_secret and x_cron_secret != settings.cron_secret:
        raise UnauthorizedError("Invalid cron secret")


def get_orchestrator():
    """Scan orchestrator wired to the configured providers (overridable in tests)."""
    from app.services.scan_orchestrator import ScanOrchestrator

    return ScanOrchestrator()
