"""
Tests for loading the live/sandbox public keys
"""
import asyncio

from config import GooglePlay
from schemas import Environment, GooglePlayConfig
from services.trust_anchor_store import TrustAnchorStore


def setup_store(google_config=None):
    store = TrustAnchorStore()
    asyncio.run(store.setup(google_config))
    return store

def write_key_files(tmp_path, live=None, sandbox=None):
    if live is not None:
        (tmp_path / GooglePlay.LIVE_KEY_FILE).write_text(live)
    if sandbox is not None:
        (tmp_path / GooglePlay.SANDBOX_KEY_FILE).write_text(sandbox)
    # googlePublicKeyPath is a prefix, so it carries its trailing separator
    return str(tmp_path) + "/"


def test_nothing_configured():
    """Test setup with nothing configured"""
    store = setup_store()
    assert store.live is None
    assert store.sandbox is None

def test_keys_from_config_strings():
    """Test keys from config strings"""
    store = setup_store(GooglePlayConfig(googlePublicKeyStrLive="LIVEKEY", googlePublicKeyStrSandbox="SANDBOXKEY"))
    assert store.live == "LIVEKEY"
    assert store.sandbox == "SANDBOXKEY"
    assert store.get(Environment.live) == "LIVEKEY"
    assert store.get("sandbox") == "SANDBOXKEY"

def test_keys_from_files_strip_trailing_whitespace(tmp_path):
    """Test keys from files strip trailing whitespace"""
    path = write_key_files(tmp_path, live="LIVEFILEKEY\n", sandbox="SANDBOXFILEKEY \n\n")
    store = setup_store(GooglePlayConfig(googlePublicKeyPath=path))
    assert store.live == "LIVEFILEKEY"
    assert store.sandbox == "SANDBOXFILEKEY"

def test_missing_key_file_is_not_configured(tmp_path):
    """Test missing key file is not configured"""
    path = write_key_files(tmp_path, live="LIVEFILEKEY")
    store = setup_store(GooglePlayConfig(googlePublicKeyPath=path))
    assert store.live == "LIVEFILEKEY"
    assert store.sandbox is None

def test_keys_from_environment(monkeypatch):
    """Test keys from environment"""
    monkeypatch.setenv(GooglePlay.ENV_PUBLICKEY_LIVE, "LIVEENVKEY  \n")
    monkeypatch.setenv(GooglePlay.ENV_PUBLICKEY_SANDBOX, "SANDBOXENVKEY")
    store = setup_store()
    assert store.live == "LIVEENVKEY"
    assert store.sandbox == "SANDBOXENVKEY"

def test_string_wins_over_file_and_environment(tmp_path, monkeypatch):
    """Test string wins over file and environment"""
    monkeypatch.setenv(GooglePlay.ENV_PUBLICKEY_LIVE, "LIVEENVKEY")
    path = write_key_files(tmp_path, live="LIVEFILEKEY")
    store = setup_store(GooglePlayConfig(googlePublicKeyPath=path, googlePublicKeyStrLive="LIVEKEY"))
    assert store.live == "LIVEKEY"

def test_file_wins_over_environment(tmp_path, monkeypatch):
    """Test file wins over environment"""
    monkeypatch.setenv(GooglePlay.ENV_PUBLICKEY_SANDBOX, "SANDBOXENVKEY")
    path = write_key_files(tmp_path, sandbox="SANDBOXFILEKEY")
    store = setup_store(GooglePlayConfig(googlePublicKeyPath=path))
    assert store.sandbox == "SANDBOXFILEKEY"

def test_each_environment_resolves_on_its_own(monkeypatch):
    """Test each environment resolves on its own"""
    monkeypatch.setenv(GooglePlay.ENV_PUBLICKEY_SANDBOX, "SANDBOXENVKEY")
    store = setup_store(GooglePlayConfig(googlePublicKeyStrLive="LIVEKEY"))
    assert store.live == "LIVEKEY"
    assert store.sandbox == "SANDBOXENVKEY"

def test_setup_replaces_previous_keys():
    """Test setup replaces previous keys"""
    store = setup_store(GooglePlayConfig(googlePublicKeyStrLive="OLD", googlePublicKeyStrSandbox="OLDSANDBOX"))
    asyncio.run(store.setup(GooglePlayConfig(googlePublicKeyStrLive="NEW")))
    assert store.live == "NEW"
    assert store.sandbox is None

def test_set_and_clear():
    """Test setting and clearing keys"""
    store = TrustAnchorStore()
    store.set(Environment.sandbox, "SANDBOXKEY")
    assert store.sandbox == "SANDBOXKEY"
    store.set(Environment.sandbox, None)
    assert store.sandbox is None
    store.set("live", "LIVEKEY")
    store.clear()
    assert store.live is None
