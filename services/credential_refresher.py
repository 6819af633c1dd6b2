"""
credential_refresher.py
Holds the Android Publisher API credentials and redeems the refresh token for
a new access token.

The access token is the only mutable field and refresh() is the only place it
changes. Refreshes are single-flight: concurrent callers that saw the same
stale token share one token request.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple

import httpx

from config import GooglePlay, get_logger, log_debug, log_debug_error
from schemas import ValidationStatus
from services.exceptions import ConfigurationError, IAPError, RemoteError, extract_error_message, failure

logger = get_logger(__name__)

MISSING_CREDENTIALS_MESSAGE = "client_id, client_secret, access_token and refresh_token should be provided"


class CredentialRefresher:
    def __init__(
        self,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        token_url: str = GooglePlay.TOKEN_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = GooglePlay.HTTP_TIMEOUT,
    ) -> None:
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._client_id = client_id
        self._client_secret = client_secret
        self.token_url = token_url
        self.http_client = http_client
        self.timeout = timeout
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _refresh_lock(self) -> asyncio.Lock:
        # One lock per running event loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @property
    def is_configured(self) -> bool:
        return bool(self._access_token and self._refresh_token and self._client_id and self._client_secret)

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def get_access_token(self) -> Optional[str]:
        return self._access_token

    async def refresh(self, stale_token: Optional[str] = None) -> Tuple[Optional[IAPError], Dict[str, Any]]:
        """
        Exchange the refresh token for a new access token.

        If stale_token is given and another caller already replaced it while we
        waited for the lock, the current token is returned without a request.
        """
        if not self.is_configured:
            return ConfigurationError("missing google play api info"), {
                "status": ValidationStatus.FAILURE.value,
                "message": MISSING_CREDENTIALS_MESSAGE,
            }

        async with self._refresh_lock():
            if stale_token is not None and self._access_token != stale_token:
                log_debug(logger, "<Google> Access token already refreshed by a concurrent request")
                return None, {"access_token": self._access_token}

            error, body = await self._request_token()
            if error:
                log_debug_error(logger, "<Google> Failed to refresh Google token: %s", error)
                return error, failure(error)

            self._access_token = body["access_token"]
            log_debug(logger, "<Google> Successfully refreshed Google token")
            return None, body

    async def _request_token(self) -> Tuple[Optional[RemoteError], Optional[Dict[str, Any]]]:
        form = {
            "grant_type": "refresh_token",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": self._refresh_token,
        }
        try:
            if self.http_client is not None:
                response = await self.http_client.post(self.token_url, data=form, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.token_url, data=form)
        except httpx.HTTPError as e:
            return RemoteError(f"token request failed: {e}"), None

        try:
            body = response.json()
        except ValueError:
            return RemoteError(f"invalid token response: {response.status_code}", response.status_code, response.text), None

        if not isinstance(body, dict):
            return RemoteError("invalid token response", response.status_code, body), None
        if "error" in body:
            return RemoteError(extract_error_message(body["error"]), response.status_code, body), None
        if not body.get("access_token"):
            return RemoteError("token response missing access_token", response.status_code, body), None
        return None, body
