"""
exceptions.py
Error types reported by receipt validation and purchase status reconciliation.

These are returned as the first element of (error, result) pairs rather than
raised across the async boundary.
"""

from typing import Any, Dict, Optional

from schemas import ValidationStatus


class IAPError(Exception):
    pass


class MalformedReceiptError(IAPError):
    """Structural problem with the receipt, found before any crypto or network work."""


class SignatureError(IAPError):
    pass


class VerificationFailure(SignatureError):
    """The signature does not validate against the key that was tried."""


class CryptoError(SignatureError):
    """The verification primitive rejected the key or signature encoding, or no key was available."""


class ConfigurationError(IAPError):
    """Android Publisher credentials are incomplete."""


class RemoteError(IAPError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)


def extract_error_message(error: Any) -> str:
    """Google error bodies carry either a plain string or an object with a message."""
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return str(error)


def failure(error: Exception) -> Dict[str, Any]:
    return {"status": ValidationStatus.FAILURE.value, "message": str(error)}
