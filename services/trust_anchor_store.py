"""
trust_anchor_store.py
Google Play public keys per environment (live / sandbox).

Each environment resolves from the first source that is present:
explicit config string, then the key file under googlePublicKeyPath,
then the GOOGLE_IAB_PUBLICKEY_* environment variable.
"""

import asyncio
import os
from typing import Dict, Optional

from config import GooglePlay, get_logger, log_debug
from schemas import Environment, GooglePlayConfig

logger = get_logger(__name__)


class TrustAnchorStore:
    def __init__(self) -> None:
        self._anchors: Dict[Environment, str] = {}

    @property
    def live(self) -> Optional[str]:
        return self._anchors.get(Environment.live)

    @property
    def sandbox(self) -> Optional[str]:
        return self._anchors.get(Environment.sandbox)

    def get(self, environment: Environment) -> Optional[str]:
        return self._anchors.get(Environment(environment))

    def set(self, environment: Environment, key_material: Optional[str]) -> None:
        environment = Environment(environment)
        if key_material:
            self._anchors[environment] = key_material
        else:
            self._anchors.pop(environment, None)

    def clear(self) -> None:
        self._anchors.clear()

    async def setup(self, google_config: Optional[GooglePlayConfig] = None) -> None:
        """Resolve the key for each environment; missing key files count as not configured."""
        self.clear()
        for environment in (Environment.live, Environment.sandbox):
            key_material = self._from_config_string(google_config, environment)
            if key_material is None:
                key_material = await self._from_key_file(google_config, environment)
            if key_material is None:
                key_material = self._from_env(environment)
            self.set(environment, key_material)
            log_debug(logger, "<Google> %s public key %s", environment.value,
                      "loaded" if key_material else "not configured")

    @staticmethod
    def _from_config_string(google_config: Optional[GooglePlayConfig], environment: Environment) -> Optional[str]:
        if not google_config:
            return None
        if environment == Environment.live:
            return google_config.googlePublicKeyStrLive or None
        return google_config.googlePublicKeyStrSandbox or None

    @staticmethod
    async def _from_key_file(google_config: Optional[GooglePlayConfig], environment: Environment) -> Optional[str]:
        if not google_config or not google_config.googlePublicKeyPath:
            return None
        file_name = GooglePlay.LIVE_KEY_FILE if environment == Environment.live else GooglePlay.SANDBOX_KEY_FILE
        # The configured path is a prefix, not a directory
        key_path = google_config.googlePublicKeyPath + file_name
        try:
            content = await asyncio.to_thread(_read_text, key_path)
        except OSError as e:
            log_debug(logger, "<Google> Ignoring unreadable public key file %s: %s", key_path, e)
            return None
        return content.rstrip() or None

    @staticmethod
    def _from_env(environment: Environment) -> Optional[str]:
        name = GooglePlay.ENV_PUBLICKEY_LIVE if environment == Environment.live else GooglePlay.ENV_PUBLICKEY_SANDBOX
        value = os.getenv(name)
        if not value:
            return None
        return value.rstrip() or None


def _read_text(path: str) -> str:
    with open(path, "r") as f:
        return f.read()
