"""
Test configuration file for pytest
Contains fixtures and setup for testing
"""
import pytest
import httpx
import base64
import os
import sys
from urllib.parse import parse_qs

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

# Add the parent directory to sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import GooglePlay
from services.signature_verifier import SignatureVerifier

PURCHASE = {
    "orderId": "GPA.3301-2244-0013-55321",
    "packageName": "com.example.app",
    "productId": "premium_monthly",
    "purchaseTime": 1700000000000,
    "purchaseState": 0,
    "purchaseToken": "opaque-purchase-token",
    "developerPayload": "https://example.com/user/42",
}


def generate_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def key_material(private_key) -> str:
    """Bare base64 public key, the way Google Play Console shows it."""
    der = private_key.public_key().public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode("ascii")


def sign(private_key, data: str) -> str:
    signature = private_key.sign(data.encode("utf-8"), padding.PKCS1v15(), hashes.SHA1())
    return base64.b64encode(signature).decode("ascii")


class FakeGooglePlay:
    """Stands in for the token endpoint (POST) and the Android Publisher API (GET)."""

    def __init__(self):
        self.requests = []
        self.valid_tokens = {"fresh-access-token"}
        self.token_response = {"access_token": "fresh-access-token", "expires_in": 3600, "token_type": "Bearer"}
        self.token_status = 200
        self.token_transport_error = False
        self.lookup_transport_error = False
        self.invalid_token_body = {"error": {"code": 401, "message": "Invalid Credentials"}}
        self.purchase_info = {"kind": "androidpublisher#subscriptionPurchase",
                              "autoRenewing": True, "expiryTimeMillis": "1800000000000"}

    @property
    def lookups(self):
        return [r for r in self.requests if r.method == "GET"]

    @property
    def token_requests(self):
        return [r for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            if self.token_transport_error:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(self.token_status, json=self.token_response)

        if self.lookup_transport_error:
            raise httpx.ConnectError("connection reset", request=request)
        token = request.headers.get("Authorization", "").replace("Bearer ", "", 1)
        if token not in self.valid_tokens:
            return httpx.Response(401, json=self.invalid_token_body)
        return httpx.Response(200, json=self.purchase_info)

    @staticmethod
    def form(request: httpx.Request) -> dict:
        return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class SpyVerifier(SignatureVerifier):
    """Records which keys were tried."""

    def __init__(self):
        self.keys_tried = []

    def verify(self, payload, signature, key_material):
        self.keys_tried.append(key_material)
        return super().verify(payload, signature, key_material)


@pytest.fixture(autouse=True)
def clean_key_env(monkeypatch):
    """Keep IAB public keys from the real environment out of the tests."""
    monkeypatch.delenv(GooglePlay.ENV_PUBLICKEY_LIVE, raising=False)
    monkeypatch.delenv(GooglePlay.ENV_PUBLICKEY_SANDBOX, raising=False)


@pytest.fixture(scope="session")
def live_private_key():
    return generate_key()


@pytest.fixture(scope="session")
def sandbox_private_key():
    return generate_key()


@pytest.fixture(scope="session")
def live_key(live_private_key):
    return key_material(live_private_key)


@pytest.fixture(scope="session")
def sandbox_key(sandbox_private_key):
    return key_material(sandbox_private_key)


@pytest.fixture
def purchase():
    return dict(PURCHASE)


@pytest.fixture
def google_play():
    return FakeGooglePlay()


@pytest.fixture
def http_client(google_play):
    return httpx.AsyncClient(transport=httpx.MockTransport(google_play.handler))


@pytest.fixture
def spy_verifier():
    return SpyVerifier()


@pytest.fixture
def credentials():
    return {
        "googleAccToken": "expired-access-token",
        "googleRefToken": "refresh-token",
        "googleClientID": "client-id.apps.googleusercontent.com",
        "googleClientSecret": "client-secret",
    }


@pytest.fixture(scope="session")
def signer():
    return sign


@pytest.fixture
def signed_receipt(live_private_key):
    """Receipt over PURCHASE signed with the live key."""
    from services.receipt_validator import canonicalize_receipt_data
    data = canonicalize_receipt_data(dict(PURCHASE))
    return {"data": data, "signature": sign(live_private_key, data)}
