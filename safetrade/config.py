"""Environment-driven settings for the SafeTrade fraud guard.

Values come from the process environment, with a local .env file loaded
first when present.
"""

import os
from dotenv import load_dotenv

load_dotenv()

PRODUCTION = "production"
DEVELOPMENT = "development"

# Anything in this set is treated as a non-production deployment
_DEVELOPMENT_ALIASES = frozenset(["development", "dev", "test", "testing", "local"])


def resolve_runtime_mode(value: str) -> str:
    """Map a raw environment label to PRODUCTION or DEVELOPMENT.

    Unknown labels fall back to PRODUCTION so a typo never disables blocking.
    """
    if value and value.strip().lower() in _DEVELOPMENT_ALIASES:
        return DEVELOPMENT
    return PRODUCTION


class Config:
    SERVICE_NAME = "SafeTrade Fraud Guard"
    VERSION = "1.0.0"

    RUNTIME_MODE: str = resolve_runtime_mode(os.getenv("SAFETRADE_ENV", PRODUCTION))
    API_KEY: str = os.getenv("API_KEY", "safetrade-dev-key")

    # Empty URL keeps fraud screening in-process
    FRAUD_SERVICE_URL: str = os.getenv("FRAUD_SERVICE_URL", "").strip()
    FRAUD_SERVICE_TIMEOUT: float = float(os.getenv("FRAUD_SERVICE_TIMEOUT", "5"))

    MAX_SCAN_CHARS: int = int(os.getenv("MAX_SCAN_CHARS", "5000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
