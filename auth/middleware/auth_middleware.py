"""
Token verification against the TPMA API.

The bearer token comes from the Authorization header or, for browser calls,
the `token` cookie. Verified identities are cached for a short TTL so each
dashboard request does not cost an extra round trip.

Usage:
    @router.get("/protected")
    def protected_endpoint(user: CurrentUser = Depends(require_role("supervisor"))):
        return {"identifier": user.identifier}
"""

import hashlib
import logging
import threading
import time
from typing import Generator, Optional

from cachetools import TTLCache
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth.models.schemas import CurrentUser
from config import get_settings
from shared.models.domain import VerifiedIdentity
from tpma.client import TPMAClient
from tpma.exceptions import TPMAError

logger = logging.getLogger("auth.middleware")

security = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "token"


class IdentityCache:
    """
    Bounded TTL cache of verified identities keyed by a hash of the token.

    Expired entries are dropped on every write, and the least recently used
    identity is evicted once `max_entries` is reached.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 1024, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._entries: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=clock)

    @staticmethod
    def _key(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def get(self, token: str) -> Optional[VerifiedIdentity]:
        with self._lock:
            return self._entries.get(self._key(token))

    def put(self, token: str, identity: VerifiedIdentity) -> None:
        with self._lock:
            self._entries[self._key(token)] = identity

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)


_identity_cache: Optional[IdentityCache] = None


def get_identity_cache() -> IdentityCache:
    global _identity_cache
    if _identity_cache is None:
        settings = get_settings()
        _identity_cache = IdentityCache(
            settings.verify_cache_ttl_seconds, max_entries=settings.verify_cache_max_entries
        )
    return _identity_cache


def reset_identity_cache() -> None:
    """Drop cached identities (used by tests)."""
    global _identity_cache
    _identity_cache = None


def get_optional_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the token cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(TOKEN_COOKIE) or None


def get_token(token: Optional[str] = Depends(get_optional_token)) -> str:
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return token


def get_tpma_client(token: Optional[str] = Depends(get_optional_token)) -> Generator[TPMAClient, None, None]:
    """
    FastAPI dependency: one TPMA client per request, closed when the request ends.

    Closing the client aborts any remote call still outstanding.
    """
    client = TPMAClient.from_settings(token)
    try:
        yield client
    finally:
        client.close()


def verify_identity(token: str, client: TPMAClient) -> VerifiedIdentity:
    cache = get_identity_cache()
    identity = cache.get(token)
    if identity is not None:
        return identity

    identity = client.verify_token()
    cache.put(token, identity)
    logger.info(f"Verified {identity.role} {identity.identifier}")
    return identity


def get_current_user(
    token: str = Depends(get_token),
    client: TPMAClient = Depends(get_tpma_client),
) -> CurrentUser:
    """
    FastAPI dependency: verify the caller's token with the TPMA API.
    Raises 401 if the token is missing or rejected.
    """
    try:
        identity = verify_identity(token, client)
    except TPMAError as e:
        logger.warning(f"Token verification failed: {e}")
        raise e.to_http_exception()
    return CurrentUser(role=identity.role, identifier=identity.identifier, token=token)


def require_role(*roles: str):
    """Dependency factory: allow only callers whose role is one of `roles`."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_role(*roles):
            logger.warning(f"{user.role} {user.identifier} denied; requires one of {roles}")
            raise HTTPException(status_code=403, detail="You are not authorized to perform this action.")
        return user

    return dependency
