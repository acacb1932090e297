"""
OAuth2 client-credentials token acquisition
"""

from typing import Callable, Dict, Tuple
import asyncio
import logging
import time

import httpx

from core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before they expire
EXPIRY_MARGIN_SECONDS = 60


class ClientCredentialsTokenProvider:
    """
    Acquires app-only access tokens and caches them per scope until expiry.

    Both remote services authenticate with the same app registration but
    different scopes, so one provider serves both clients.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority: str = "https://login.microsoftonline.com",
        timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.http_client = http_client
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = f"{authority.rstrip('/')}/{tenant_id}/oauth2/v2.0/token"
        self.timeout = timeout
        self.clock = clock
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get_token(self, scope: str) -> str:
        """
        Return a valid access token for the scope.

        Raises:
            AuthenticationError: If the token endpoint rejects the request
        """
        async with self._lock:
            cached = self._cache.get(scope)
            if cached and cached[1] > self.clock():
                return cached[0]

            token, expires_in = await self._request_token(scope)
            self._cache[scope] = (token, self.clock() + max(expires_in - EXPIRY_MARGIN_SECONDS, 0))
            logger.debug(f"Acquired token for scope {scope} (expires in {expires_in}s)")
            return token

    def invalidate(self, scope: str):
        self._cache.pop(scope, None)

    async def _request_token(self, scope: str) -> Tuple[str, int]:
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": scope,
        }

        try:
            response = await self.http_client.post(self.token_url, data=data, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise AuthenticationError(
                "Token request failed",
                context={"token_url": self.token_url, "scope": scope},
                original_exception=e
            )

        if response.status_code != 200:
            raise AuthenticationError(
                "Token endpoint rejected the client credentials",
                context={
                    "token_url": self.token_url,
                    "scope": scope,
                    "response_body": response.text[:500],
                },
                status_code=response.status_code
            )

        try:
            payload = response.json()
            return payload["access_token"], int(payload.get("expires_in", 3600))
        except (ValueError, KeyError) as e:
            raise AuthenticationError(
                "Token response could not be parsed",
                context={"token_url": self.token_url, "scope": scope},
                original_exception=e
            )
