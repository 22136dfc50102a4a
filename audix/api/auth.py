"""
Request identity resolution.

The identity provider is external. With AUDIX_AUTH_VERIFY_URL set, bearer
tokens are verified against it and cached briefly; otherwise the user id is
taken from the X-User-Id header set by the upstream gateway.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request

from fastapi import Header, HTTPException

from audix import config
from audix.cache import TTLCache
from audix.services.errors import UnauthenticatedError

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip() or None
    return None


class TokenVerifier:
    """Verifies bearer tokens with the identity provider."""

    def __init__(
        self,
        verify_url: str,
        cache: TTLCache | None = None,
        timeout: float = config.AUTH_VERIFY_TIMEOUT,
    ) -> None:
        self.verify_url = verify_url
        self.timeout = timeout
        self._cache = cache or TTLCache(ttl=config.AUTH_CACHE_TTL)

    def verify(self, token: str) -> str:
        """
        Resolve a token to the provider's user id.

        Raises:
            UnauthenticatedError: If the provider rejects the token.
        """
        hit, user_id = self._cache.get(token)
        if hit:
            return user_id

        request = urllib.request.Request(
            self.verify_url,
            data=json.dumps({"token": token}).encode(),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                result = json.loads(response.read().decode())
        except urllib.error.HTTPError as e:
            if e.code in (401, 403):
                raise UnauthenticatedError("Invalid session token") from e
            raise RuntimeError(f"Identity provider returned {e.code}") from e
        except http.client.HTTPException as e:
            raise RuntimeError(f"Identity provider connection failed: {e!r}") from e

        if not isinstance(result, dict):
            raise RuntimeError(
                f"Identity provider returned {type(result).__name__}, expected an object"
            )
        user_id = result.get("userId") or result.get("user_id")
        if not user_id:
            raise UnauthenticatedError("Identity provider returned no user")
        self._cache.set(token, user_id)
        return user_id


_verifier: TokenVerifier | None = None


def get_token_verifier() -> TokenVerifier | None:
    global _verifier
    if config.AUTH_VERIFY_URL is None:
        return None
    if _verifier is None:
        _verifier = TokenVerifier(config.AUTH_VERIFY_URL)
    return _verifier


def resolve_user_id(authorization: str | None, gateway_user_id: str | None) -> str:
    verifier = get_token_verifier()
    if verifier is not None:
        token = extract_bearer_token(authorization)
        if not token:
            raise UnauthenticatedError("User not authenticated")
        return verifier.verify(token)

    if gateway_user_id and gateway_user_id.strip():
        return gateway_user_id.strip()
    raise UnauthenticatedError("User not authenticated")


def get_current_user_id(
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """FastAPI dependency returning the caller's stable user id."""
    try:
        return resolve_user_id(authorization, x_user_id)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except (RuntimeError, ValueError, OSError) as e:
        logger.warning(f"Identity provider unavailable: {e}")
        raise HTTPException(status_code=503, detail="Identity provider unavailable")
