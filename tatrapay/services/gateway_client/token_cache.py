"""Single-slot OAuth2 client-credentials token cache."""

import time
from typing import Callable

import httpx

from tatrapay.common.errors import AuthenticationError
from tatrapay.common.logging import logger
from tatrapay.common.metrics import token_refresh_total
from tatrapay.services.gateway_client.models import CachedToken

# Seconds before declared expiry after which a cached token is no longer handed out.
EXPIRY_SAFETY_MARGIN_SECONDS = 60


class TokenCache:
    """Owns one bearer token and refreshes it when absent or near expiry.

    Concurrent callers may refresh at the same time; the exchange is
    idempotent and the last writer wins, so no lock is taken.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        scope: str = "TATRAPAYPLUS",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.http_client = http_client
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.clock = clock
        self.refresh_count = 0
        self._token: CachedToken | None = None

    @property
    def token(self) -> CachedToken | None:
        return self._token

    def is_valid(self) -> bool:
        return (
            self._token is not None
            and self.clock() < self._token.expires_at - EXPIRY_SAFETY_MARGIN_SECONDS
        )

    def invalidate(self) -> None:
        self._token = None

    async def get_access_token(self) -> str:
        """Return the cached token, exchanging credentials first if needed."""

        if self.is_valid():
            return self._token.access_token
        token = await self._refresh()
        return token.access_token

    async def _refresh(self) -> CachedToken:
        logger.info("requesting access token url=%s", self.token_url)
        try:
            resp = await self.http_client.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": self.scope,
                },
            )
        except httpx.HTTPError as exc:
            token_refresh_total.labels(outcome="error").inc()
            raise AuthenticationError(f"TatraPay authentication failed: {exc}") from exc

        if resp.status_code >= 400:
            token_refresh_total.labels(outcome="rejected").inc()
            logger.error("token request failed status=%s body=%s", resp.status_code, resp.text)
            raise AuthenticationError(
                f"TatraPay authentication failed: {resp.status_code} {resp.text[:200]}",
                gateway_status=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
            token = CachedToken(
                access_token=data["access_token"],
                token_type=data.get("token_type", "Bearer"),
                expires_in=int(data["expires_in"]),
                scope=data.get("scope", ""),
                expires_at=self.clock() + int(data["expires_in"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            token_refresh_total.labels(outcome="malformed").inc()
            logger.error("token response malformed body=%s", resp.text[:200])
            raise AuthenticationError(
                "TatraPay authentication failed: malformed token response",
                gateway_status=resp.status_code,
                body=resp.text,
            ) from exc

        self._token = token
        self.refresh_count += 1
        token_refresh_total.labels(outcome="ok").inc()
        logger.info("access token obtained expires_in=%s", token.expires_in)
        return token
