import os
import sys

from dotenv import load_dotenv

from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test scripts to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)


def _exit_with_config_error(name: str, reason: Exception, expected: str) -> None:
    print(f"\n ERROR: Invalid {name} configuration\n", file=sys.stderr)
    print(f"Reason: {reason}", file=sys.stderr)
    print(f"Expected: {expected}", file=sys.stderr)
    print(f"Current value: {os.environ.get(name, '(not set)')}\n", file=sys.stderr)
    sys.exit(1)


# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(os.environ.get("RUNTIME_ENVIRONMENT", "DEV"))
except ValueError as e:
    _exit_with_config_error(
        "RUNTIME_ENVIRONMENT", e, ", ".join(env.value for env in RuntimeEnvironment)
    )

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = int(os.environ.get("WEBAPP_PORT", "8000"))

# Database
DB_NAME = os.environ.get("DB_NAME", "restaurant.db")
DB_URL = os.environ.get("DB_URL") or f"sqlite+aiosqlite:///data/{DB_NAME}"

# Redis (optional) - caches the restaurant settings singleton
REDIS_URL = os.environ.get("REDIS_URL")
SETTINGS_CACHE_TTL_SECONDS = int(os.environ.get("SETTINGS_CACHE_TTL_SECONDS", "600"))  # 10 minutes

# Cart Configuration
# Carts expire after N days without a mutation
try:
    CART_TTL_DAYS = int(os.environ.get("CART_TTL_DAYS", "7"))
    if CART_TTL_DAYS <= 0:
        raise ValueError(f"CART_TTL_DAYS must be positive (got: {CART_TTL_DAYS})")
except ValueError as e:
    _exit_with_config_error("CART_TTL_DAYS", e, "Positive integer (e.g., 7)")

CART_CLEANUP_INTERVAL_SECONDS = int(os.environ.get("CART_CLEANUP_INTERVAL_SECONDS", "3600"))

# Display currency for user-facing messages ("Add ₹100.00 more ...")
CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "₹")

# Storage retry policy (usage ledger, settings singleton creation): attempts in total, first try included
STORAGE_RETRY_ATTEMPTS = int(os.environ.get("STORAGE_RETRY_ATTEMPTS", "3"))
STORAGE_RETRY_DELAY_BASE = float(os.environ.get("STORAGE_RETRY_DELAY_BASE", "0.1"))  # seconds

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs

# Log Retention: Environment-specific defaults
# Dev: keep 30 days for debugging, otherwise 5 days to save disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "30"))
else:
    LOG_RETENTION_DAYS = int(os.environ.get("LOG_RETENTION_DAYS", "5"))

# CORS for the customer/admin apps
API_CORS_ALLOWED_ORIGINS = os.environ.get("API_CORS_ALLOWED_ORIGINS", "").split(",") if os.environ.get("API_CORS_ALLOWED_ORIGINS") else []
