"""
config.py
This file contains all the configuration for receipt validation, including the
Google Play public keys, the Android Publisher API credentials and endpoints

To change log level, set the LOG_LEVEL environment variable (e.g., LOG_LEVEL=WARNING)
"""

import os
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import logging

from schemas import GooglePlayConfig

# Load environment variables from .env file first
load_dotenv()

# Centralized logging configuration for production
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

# Debug logging flag - controls whether detailed validation logs are shown
# Set LOGGER_DEBUG=true for testing, false for production
LOGGER_DEBUG = os.getenv("LOGGER_DEBUG", "false").lower() == "true"

def get_logger(name=None):
    """Get a logger with the specified name, using the centralized config."""
    return logging.getLogger(name)

def set_debug_logging(enabled: bool) -> None:
    """Turn the conditional validation logs on or off at runtime."""
    global LOGGER_DEBUG
    LOGGER_DEBUG = bool(enabled)

def log_debug(logger, message, *args, **kwargs):
    """
    Conditionally log info messages based on LOGGER_DEBUG flag.
    Use this for step-by-step validation logs that should only appear when debugging is enabled.
    When LOGGER_DEBUG=false, these logs are suppressed.
    When LOGGER_DEBUG=true, these logs are shown.
    """
    if LOGGER_DEBUG:
        logger.info(message, *args, **kwargs)

def log_debug_error(logger, message, *args, **kwargs):
    """
    Conditionally log error messages based on LOGGER_DEBUG flag.
    Use this for receipt verification error logs that should only appear when debugging is enabled.
    """
    if LOGGER_DEBUG:
        logger.error(message, *args, **kwargs)

def log_debug_warning(logger, message, *args, **kwargs):
    """
    Conditionally log warning messages based on LOGGER_DEBUG flag.
    Use this for receipt verification warning logs that should only appear when debugging is enabled.
    """
    if LOGGER_DEBUG:
        logger.warning(message, *args, **kwargs)


# **** GOOGLE PLAY CONFIGURATION ****
class GooglePlay:
    # Public keys: explicit strings win over the key files, which win over the IAB env vars
    PUBLIC_KEY_PATH = os.getenv("GOOGLE_PUBLIC_KEY_PATH")
    PUBLIC_KEY_STR_LIVE = os.getenv("GOOGLE_PUBLIC_KEY_STR_LIVE")
    PUBLIC_KEY_STR_SANDBOX = os.getenv("GOOGLE_PUBLIC_KEY_STR_SANDBOX")
    LIVE_KEY_FILE = "iap-live"
    SANDBOX_KEY_FILE = "iap-sandbox"
    ENV_PUBLICKEY_LIVE = "GOOGLE_IAB_PUBLICKEY_LIVE"
    ENV_PUBLICKEY_SANDBOX = "GOOGLE_IAB_PUBLICKEY_SANDBOX"

    # Android Publisher API credentials (all four are needed to check purchase state)
    ACCESS_TOKEN = os.getenv("GOOGLE_ACCESS_TOKEN")
    REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
    CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
    CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")

    API_URL = os.getenv("GOOGLE_PLAY_API_URL", "https://www.googleapis.com/androidpublisher/v2/applications")
    TOKEN_URL = os.getenv("GOOGLE_OAUTH_TOKEN_URL", "https://accounts.google.com/o/oauth2/token")
    HTTP_TIMEOUT = float(os.getenv("GOOGLE_PLAY_HTTP_TIMEOUT", "10"))

    @classmethod
    def as_config(cls) -> Dict[str, Any]:
        """Config mapping in the same shape callers pass to read_config()"""
        values = {
            "googlePublicKeyPath": cls.PUBLIC_KEY_PATH,
            "googlePublicKeyStrLive": cls.PUBLIC_KEY_STR_LIVE,
            "googlePublicKeyStrSandbox": cls.PUBLIC_KEY_STR_SANDBOX,
            "googleAccToken": cls.ACCESS_TOKEN,
            "googleRefToken": cls.REFRESH_TOKEN,
            "googleClientID": cls.CLIENT_ID,
            "googleClientSecret": cls.CLIENT_SECRET,
        }
        return {key: value for key, value in values.items() if value}


# Keys from before the google prefix was introduced
LEGACY_KEY_MAPPING = {
    "publicKeyStrLive": "googlePublicKeyStrLive",
    "publicKeyStrSandbox": "googlePublicKeyStrSandbox",
}

def read_config(config_in: Optional[Dict[str, Any]]) -> Optional[GooglePlayConfig]:
    """
    Pick the google* keys out of a caller supplied config mapping.

    Returns None when nothing Google related was configured, in which case the
    public keys can still come from the IAB environment variables at setup.
    """
    if not config_in:
        return None

    if config_in.get("verbose"):
        set_debug_logging(True)

    values = {key: value for key, value in config_in.items() if key.startswith("google")}
    if not values:
        return None

    for legacy_key, key in LEGACY_KEY_MAPPING.items():
        if config_in.get(legacy_key):
            values[key] = config_in[legacy_key]

    return GooglePlayConfig(**values)
