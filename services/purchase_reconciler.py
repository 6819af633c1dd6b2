"""
purchase_reconciler.py
Confirms a verified Google Play purchase against the Android Publisher API.

The check runs Lookup -> Decide -> Recheck in order:
- Lookup fetches the purchase (or subscription) record. A failure here is not
  fatal, it means the access token may be stale.
- Decide refreshes the access token when Lookup failed. A failed refresh ends
  the check.
- Recheck repeats the lookup once, only after a refresh.

So a single call makes at most two lookups and one token refresh.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from config import GooglePlay, get_logger, log_debug, log_debug_error
from schemas import ReconciliationState, Service
from services.credential_refresher import CredentialRefresher
from services.exceptions import IAPError, RemoteError, extract_error_message, failure

logger = get_logger(__name__)

NAME = "<Google>"


@dataclass
class ReconciliationStep:
    state: ReconciliationState = ReconciliationState.PENDING
    skip_recheck: bool = False
    error: Optional[IAPError] = None


class PurchaseStatusReconciler:
    def __init__(
        self,
        refresher: CredentialRefresher,
        api_url: str = GooglePlay.API_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = GooglePlay.HTTP_TIMEOUT,
    ) -> None:
        self.refresher = refresher
        self.api_url = api_url.rstrip("/")
        self.http_client = http_client
        self.timeout = timeout

    @property
    def check_purchase_state(self) -> bool:
        return self.refresher.is_configured

    def purchase_url(self, payload: Dict[str, Any], is_subscription: bool) -> str:
        purchase_type = "subscriptions" if is_subscription else "products"
        parts = [quote(str(payload.get(key)), safe="") for key in ("packageName", "productId", "purchaseToken")]
        return f"{self.api_url}/{parts[0]}/purchases/{purchase_type}/{parts[1]}/tokens/{parts[2]}"

    async def reconcile(self, payload: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> Tuple[Optional[IAPError], Dict[str, Any]]:
        payload["service"] = Service.GOOGLE.value

        if not self.check_purchase_state:
            return None, payload

        is_subscription = bool(options and options.get("subscription"))
        url = self.purchase_url(payload, is_subscription)
        step = ReconciliationStep()

        # Lookup
        log_debug(logger, "%s Get purchase info from %s", NAME, url)
        token_used = self.refresher.get_access_token()
        error, body = await self._get_purchase_info(url, token_used)
        if error:
            log_debug_error(logger, "%s Failed to get purchase info from %s: %s", NAME, url, error)
            step.state = ReconciliationState.FAILURE
        else:
            self._apply(payload, body, is_subscription)
            step.state = ReconciliationState.SUCCESS
            log_debug(logger, "%s Successfully retrieved purchase info from %s", NAME, url)

        # Decide
        if step.state == ReconciliationState.SUCCESS:
            log_debug(logger, "%s Validated successfully", NAME)
            step.skip_recheck = True
        else:
            log_debug(logger, "%s Refresh Google token", NAME)
            refresh_error, _ = await self.refresher.refresh(stale_token=token_used)
            if refresh_error:
                return refresh_error, failure(refresh_error)
            step.state = ReconciliationState.SUCCESS
            step.skip_recheck = False

        # Recheck
        if not step.skip_recheck:
            log_debug(logger, "%s Re-check purchase info: %s", NAME, url)
            error, body = await self._get_purchase_info(url, self.refresher.get_access_token())
            if error:
                log_debug_error(logger, "%s Re-check failed: %s: %s", NAME, url, error)
                step.state = ReconciliationState.FAILURE
                step.error = error
            else:
                self._apply(payload, body, is_subscription)
                step.state = ReconciliationState.SUCCESS
                log_debug(logger, "%s Re-check successfully retrieved purchase info: %s", NAME, url)

        if step.state == ReconciliationState.FAILURE:
            return step.error, failure(step.error)
        return None, payload

    @staticmethod
    def _apply(payload: Dict[str, Any], body: Dict[str, Any], is_subscription: bool) -> None:
        if is_subscription:
            payload["autoRenewing"] = body.get("autoRenewing")
            payload["expirationTime"] = body.get("expiryTimeMillis")

    async def _get_purchase_info(self, url: str, access_token: Optional[str]) -> Tuple[Optional[RemoteError], Optional[Dict[str, Any]]]:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            return RemoteError(f"purchase lookup failed: {e}"), None

        try:
            body = response.json()
        except ValueError:
            return RemoteError(f"invalid purchase info response: {response.status_code}", response.status_code, response.text), None

        if not isinstance(body, dict):
            return RemoteError("invalid purchase info response", response.status_code, body), None
        if "error" in body:
            return RemoteError(extract_error_message(body["error"]), response.status_code, body), None
        return None, body
