from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from starlette.requests import Request

from compliance.core.config import get_settings
from compliance.platform.security.errors import UnauthenticatedError


@dataclass
class TokenSubject:
    sub: str
    claims: dict[str, Any]


def issue_access_token(subject: str, *, ttl_minutes: int | None = None, extra_claims: dict[str, Any] | None = None) -> str:
    settings = get_settings()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes or settings.access_token_ttl_minutes)
    payload: dict[str, Any] = {**(extra_claims or {}), "sub": subject, "exp": expires_at}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _read_token(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    return auth_header.replace("Bearer ", "", 1) if auth_header.startswith("Bearer ") else ""


async def get_token_subject(request: Request) -> TokenSubject | None:
    """Decode the bearer token, if any.

    Only ``sub`` is used for authorization. Role or tenant claims carried by the
    token are kept in ``claims`` for display purposes and never trusted.
    """

    token = _read_token(request)
    if not token:
        return None

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise UnauthenticatedError("invalid or expired access token") from exc

    subject = payload.get("sub")
    if not subject:
        raise UnauthenticatedError("access token has no subject")
    return TokenSubject(sub=str(subject), claims=payload)
