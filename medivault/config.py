"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Tokens ───────────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_ALGORITHM = "HS256"
TOKEN_EXPIRY_HOURS = int(os.getenv("TOKEN_EXPIRY_HOURS", "24"))
TOKEN_TYPE = "Bearer"

# ── Storage ──────────────────────────────────────────────────────────
DB_URI = os.getenv("DB_URI", "sqlite:///medivault.db")

# ── Clinical defaults ────────────────────────────────────────────────
DEFAULT_APPOINTMENT_REASON = "Consultation"
DEFAULT_DOCUMENT_SIZE = "0 KB"

# Identifier prefixes for business-assigned ids generated at insertion.
PRESCRIPTION_ID_PREFIX = "RX"
DOCUMENT_ID_PREFIX = "DOC"

# ── API server ───────────────────────────────────────────────────────
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value


def app_defaults() -> dict:
    """Configuration copied into ``app.config`` by the application factory."""
    return {
        "JWT_SECRET_KEY": SECRET_KEY,
        "JWT_ALGORITHM": JWT_ALGORITHM,
        "TOKEN_EXPIRY_HOURS": TOKEN_EXPIRY_HOURS,
        "DB_URI": DB_URI,
    }
