import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import JWT_ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ROLE_REQUESTER = "requester"
ROLE_PROVIDER = "provider"


@dataclass(frozen=True)
class Requester:
    """The party asking for a cleaning (the "user")"""

    id: int


@dataclass(frozen=True)
class Provider:
    """The party doing the cleaning (the "cleaner")"""

    id: int


Caller = Union[Requester, Provider]


def caller_from_claims(claims: dict[str, Any]) -> Caller:
    """
    Build the caller identity from verified token claims.

    Expected claims: callerId (int), role ("requester" | "provider") and,
    for providers, an optional providerId that overrides callerId.
    """
    role = claims.get("role")
    caller_id = claims.get("callerId")

    if caller_id is None:
        logger.error(f"❌ Token missing callerId. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    try:
        caller_id = int(caller_id)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    if role == ROLE_REQUESTER:
        return Requester(id=caller_id)
    if role == ROLE_PROVIDER:
        provider_id = claims.get("providerId")
        try:
            return Provider(id=int(provider_id) if provider_id is not None else caller_id)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=401, detail="Invalid token claims") from e

    logger.warning(f"⚠️ Token carries unknown role: {role!r}")
    raise HTTPException(status_code=403, detail="Access denied")


def create_access_token(
    caller_id: int,
    role: str,
    provider_id: Optional[int] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed token. Used by tooling and tests; production tokens come from the identity provider."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode: dict[str, Any] = {"callerId": caller_id, "role": role, "exp": expire}
    if provider_id is not None:
        to_encode["providerId"] = provider_id
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Caller:
    """Resolve the authenticated caller from the Bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = decode_access_token(credentials.credentials)
    caller = caller_from_claims(claims)
    logger.debug(f"✅ Caller authenticated: {caller}")
    return caller


async def get_current_requester(caller: Caller = Depends(get_current_caller)) -> Requester:
    if not isinstance(caller, Requester):
        raise HTTPException(status_code=403, detail="Only requesters can perform this action")
    return caller


async def get_current_provider(caller: Caller = Depends(get_current_caller)) -> Provider:
    if not isinstance(caller, Provider):
        raise HTTPException(status_code=403, detail="Only providers can perform this action")
    return caller
