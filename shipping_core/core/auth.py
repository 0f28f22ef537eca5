"""
Bearer token management for carriers.

A TokenAuthenticator belongs to exactly one carrier instance. It caches
an immutable Credential and refreshes it when missing or expired.
Concurrent operations on the same carrier share one refresh: the refresh
runs under an asyncio.Lock and callers re-check the cache after
acquiring it, so a burst of expired-token calls causes a single login.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from jose import JWTError, jwt

from shipping_core.core.utils import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """A bearer token and the moment it stops being usable."""
    token: str
    expires_at: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return bool(self.token) and (now or utcnow()) < self.expires_at

    def __repr__(self) -> str:
        # Never print the token itself
        return f"Credential(token='***', expires_at={self.expires_at.isoformat()})"


def token_expiry_claim(token: str) -> Optional[datetime]:
    """
    Read the `exp` claim of a JWT without verifying it.

    Returns None for opaque (non-JWT) tokens or tokens without `exp`.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None

    exp = claims.get("exp")
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def build_credential(
    token: str,
    ttl_seconds: int,
    refresh_margin_seconds: int = 0,
    now: Optional[datetime] = None,
) -> Credential:
    """
    Create a Credential for a freshly issued token.

    The provider's own `exp` claim wins when it is earlier than the fixed
    TTL; the refresh margin is taken off the claim so we re-login before
    the provider starts rejecting the token.
    """
    now = now or utcnow()
    expires_at = now + timedelta(seconds=ttl_seconds)

    claimed = token_expiry_claim(token)
    if claimed is not None:
        expires_at = min(expires_at, claimed - timedelta(seconds=refresh_margin_seconds))

    return Credential(token=token, expires_at=expires_at)


class TokenAuthenticator:
    """
    Single-flight credential cache.

    Args:
        provider: Provider id, for logs
        authenticate: Coroutine function performing the provider login and
            returning a new Credential. Raises ShippingError on failure.
        clock: Injected for tests
    """

    def __init__(
        self,
        provider: str,
        authenticate: Callable[[], Awaitable[Credential]],
        clock: Callable[[], datetime] = utcnow,
    ):
        self.provider = provider
        self._authenticate = authenticate
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def _valid_token(self) -> Optional[str]:
        credential = self._credential
        if credential is not None and credential.is_valid(self._clock()):
            return credential.token
        return None

    async def ensure_authenticated(self) -> str:
        """
        Return a usable bearer token, logging in first if needed.

        No network call happens while the cached credential is valid.
        Login failures propagate to the caller and are not retried.
        """
        token = self._valid_token()
        if token:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._valid_token()
            if token:
                return token

            logger.info(f"{self.provider}: authenticating")
            credential = await self._authenticate()
            self._credential = credential
            logger.info(f"{self.provider}: token cached until {credential.expires_at.isoformat()}")
            return credential.token

    def invalidate(self) -> None:
        """Drop the cached credential so the next call logs in again."""
        self._credential = None
