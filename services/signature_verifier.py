"""
signature_verifier.py
RSA (SHA1) signature check of a Google Play purchase against one public key.

Google hands out the license key as bare base64, so it is wrapped into a PEM
envelope before it is loaded.
"""

import base64
import json
from typing import Any, Dict, Optional, Tuple

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from schemas import ValidationStatus
from services.exceptions import CryptoError, IAPError, MalformedReceiptError, VerificationFailure

PEM_HEADER = "-----BEGIN PUBLIC KEY-----\n"
PEM_FOOTER = "-----END PUBLIC KEY-----\n"
PEM_LINE_LENGTH = 64


def wrap_public_key(key_material: Optional[str]) -> Optional[str]:
    """Wrap raw base64 key material into a PEM public key block."""
    if not key_material:
        return None
    key = "".join(key_material.split())
    lines = [key[i:i + PEM_LINE_LENGTH] for i in range(0, len(key), PEM_LINE_LENGTH)]
    return PEM_HEADER + "\n".join(lines) + "\n" + PEM_FOOTER


class SignatureVerifier:
    def verify(self, payload: Any, signature: str, key_material: Optional[str]) -> Tuple[Optional[IAPError], Optional[Dict[str, Any]]]:
        if not payload:
            return MalformedReceiptError("missing receipt data"), None
        if not isinstance(payload, str):
            return MalformedReceiptError("receipt.data must be a string"), None

        pem = wrap_public_key(key_material)
        if not pem:
            return CryptoError("missing public key"), None

        try:
            public_key = serialization.load_pem_public_key(pem.encode("ascii"))
            if not isinstance(public_key, rsa.RSAPublicKey):
                raise UnsupportedAlgorithm("public key is not an RSA key")
            raw_signature = base64.b64decode(signature or "")
            public_key.verify(raw_signature, payload.encode("utf-8"), padding.PKCS1v15(), hashes.SHA1())
        except InvalidSignature:
            return VerificationFailure("failed to validate purchase"), None
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            return CryptoError(f"invalid public key or signature: {e}"), None

        try:
            data = json.loads(payload)
        except ValueError as e:
            return MalformedReceiptError(f"receipt data is not valid JSON: {e}"), None
        if not isinstance(data, dict):
            return MalformedReceiptError("receipt data must be a JSON object"), None

        data["status"] = ValidationStatus.SUCCESS.value
        return None, data
