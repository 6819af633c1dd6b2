"""
receipt_validator.py
Server-side validation of Google Play in-app purchase receipts.

A receipt is {"data": <signed purchase JSON>, "signature": <base64>}. The
signature is checked against the live public key (or a key passed in by the
caller), falling back to the sandbox key. When Android Publisher API
credentials are configured the purchase is then confirmed remotely.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config import GooglePlay, get_logger, log_debug, log_debug_error, read_config
from schemas import GooglePlayConfig, PurchaseInfo, Receipt, ValidationStatus
from services.credential_refresher import CredentialRefresher
from services.exceptions import IAPError, MalformedReceiptError, failure
from services.purchase_reconciler import PurchaseStatusReconciler
from services.signature_verifier import SignatureVerifier
from services.trust_anchor_store import TrustAnchorStore

logger = get_logger(__name__)

NAME = "<Google>"


def canonicalize_receipt_data(data: Any) -> Any:
    """Stringify object receipt data the same way every time, escaping '/'."""
    if isinstance(data, dict):
        text = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return text.replace("/", "\\/")
    return data


def malformed(error: MalformedReceiptError) -> Tuple[MalformedReceiptError, Dict[str, Any]]:
    return error, {"status": ValidationStatus.FAILURE.value, "message": "Malformed receipt"}


class ReceiptValidator:
    def __init__(
        self,
        google_config: Optional[GooglePlayConfig] = None,
        trust_anchors: Optional[TrustAnchorStore] = None,
        refresher: Optional[CredentialRefresher] = None,
        verifier: Optional[SignatureVerifier] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.google_config = google_config
        self.trust_anchors = trust_anchors or TrustAnchorStore()
        self.verifier = verifier or SignatureVerifier()
        self.http_client = http_client
        self.refresher = refresher or self._build_refresher(google_config, http_client)
        self.reconciler = PurchaseStatusReconciler(self.refresher, http_client=http_client)

    @classmethod
    def from_config(cls, config_in: Optional[Dict[str, Any]], http_client: Optional[httpx.AsyncClient] = None) -> "ReceiptValidator":
        return cls(google_config=read_config(config_in), http_client=http_client)

    @staticmethod
    def _build_refresher(google_config: Optional[GooglePlayConfig], http_client: Optional[httpx.AsyncClient]) -> CredentialRefresher:
        if google_config and google_config.has_api_credentials:
            return CredentialRefresher(
                access_token=google_config.googleAccToken,
                refresh_token=google_config.googleRefToken,
                client_id=google_config.googleClientID,
                client_secret=google_config.googleClientSecret,
                http_client=http_client,
            )
        return CredentialRefresher(http_client=http_client)

    @property
    def check_purchase_state(self) -> bool:
        return self.refresher.is_configured

    async def setup(self) -> None:
        """Load the public keys. Must complete before validate_purchase() is called."""
        await self.trust_anchors.setup(self.google_config)

    def reset(self) -> None:
        """Forget keys, credentials and config."""
        self.google_config = None
        self.trust_anchors.clear()
        self.refresher = CredentialRefresher(http_client=self.http_client)
        self.reconciler = PurchaseStatusReconciler(self.refresher, http_client=self.http_client)

    async def validate_purchase(
        self,
        dynamic_key: Optional[str],
        receipt: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Optional[IAPError], Dict[str, Any]]:
        log_debug(logger, "%s Validate this: %s", NAME, receipt)

        if isinstance(receipt, Receipt):
            receipt = receipt.model_dump()
        if not isinstance(receipt, dict):
            log_debug_error(logger, "%s Failed: malformed receipt", NAME)
            return malformed(MalformedReceiptError(f"malformed receipt: {receipt}"))
        if not receipt.get("data") or not receipt.get("signature"):
            log_debug_error(logger, "%s Failed: missing receipt content", NAME)
            return malformed(MalformedReceiptError(f"missing receipt data:\n{json.dumps(receipt, default=str)}"))

        data = canonicalize_receipt_data(receipt["data"])
        if data is not receipt["data"]:
            log_debug(logger, "%s Auto stringified receipt data: %s", NAME, data)
        signature = receipt["signature"]

        public_key = self.trust_anchors.live
        if dynamic_key:
            log_debug(logger, "%s Using dynamically fed public key", NAME)
            public_key = dynamic_key

        log_debug(logger, "%s Try validate against live public key", NAME)
        error, payload = self.verifier.verify(data, signature, public_key)
        if error:
            sandbox_key = self.trust_anchors.sandbox
            if not sandbox_key:
                log_debug_error(logger, "%s Failed to validate: %s", NAME, error)
                return error, failure(error)

            log_debug(logger, "%s Failed against live public key: %s", NAME, error)
            log_debug(logger, "%s Try validate against sandbox public key", NAME)
            sandbox_error, payload = self.verifier.verify(data, signature, sandbox_key)
            if sandbox_error:
                log_debug_error(logger, "%s Failed against sandbox public key: %s", NAME, sandbox_error)
                # The live attempt's error is the one reported
                return error, failure(error)
            log_debug(logger, "%s Validation against sandbox public key successful", NAME)
        else:
            log_debug(logger, "%s Validation against live public key successful", NAME)

        return await self.reconciler.reconcile(payload, options)

    async def refresh_token(self) -> Tuple[Optional[IAPError], Dict[str, Any]]:
        return await self.refresher.refresh()

    def get_purchase_data(self, purchase: Optional[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
        if not purchase:
            return None
        info = PurchaseInfo(
            transactionId=purchase.get("purchaseToken"),
            orderId=purchase.get("orderId"),
            productId=purchase.get("productId"),
            purchaseDate=purchase.get("purchaseTime"),
            quantity=1,
        )
        if self.check_purchase_state and purchase.get("expirationTime"):
            info.expirationDate = purchase["expirationTime"]
        return [info.model_dump(exclude_none=True)]


# Singleton instance
receipt_validator = ReceiptValidator.from_config(GooglePlay.as_config())
