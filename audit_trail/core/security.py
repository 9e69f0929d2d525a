"""Security utilities: JWT caller identity and service API keys."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from audit_trail.core.config import settings
from audit_trail.core.errors import UnauthorizedError
from audit_trail.core.roles import Caller, UnassignedRole, parse_role
from audit_trail.db.session import get_db
from audit_trail.models import ServiceCredential
from audit_trail.services.credential_service import validate_credential

logger = logging.getLogger(__name__)

bearer_scheme: HTTPBearer = HTTPBearer(auto_error=False)


def create_access_token(data: dict[str, Any]) -> str:
    """Create a signed JWT access token from payload data."""
    to_encode: dict[str, Any] = data.copy()
    expire: datetime = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_expire_minutes
    )
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT token payload."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise UnauthorizedError("Could not validate credentials") from exc

    return payload


def caller_from_claims(payload: dict[str, Any]) -> Caller:
    """Build a caller from verified claims; the role string is parsed here only."""
    caller_id = payload.get("sub") or payload.get("id")
    role = payload.get("role")
    if not caller_id or not role:
        raise UnauthorizedError("Invalid authentication token")
    parsed = parse_role(str(role))
    if isinstance(parsed, UnassignedRole):
        logger.warning("[AUTH] Unrecognized role %r for caller %s; limiting to own records", parsed.raw, caller_id)
    return Caller(id=str(caller_id), username=str(payload.get("username") or caller_id), role=parsed)


def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Caller:
    """Resolve the authenticated caller from the Authorization header."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("No token provided")
    return caller_from_claims(verify_token(credentials.credentials))


def get_service_credential(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    db: Session = Depends(get_db),
) -> ServiceCredential:
    """Resolve the calling upstream service from its API key."""
    return validate_credential(db, x_api_key)
