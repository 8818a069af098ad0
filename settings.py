"""Environment-driven settings for the Thread Hive API."""

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _list_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name) or default
    return [item.strip() for item in raw.split(",") if item.strip()]


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "threadHive")

# Security settings
JWT_SECRET = os.getenv("JWT_SECRET", "dev_secret_change_me_before_deploying_thread_hive")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = _int_env("ACCESS_TOKEN_EXPIRE_HOURS", 4)

# Payments
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_API_BASE = os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1")
MEMBERSHIP_PRICE_USD = _int_env("MEMBERSHIP_PRICE_USD", 200)
PAYMENT_TIMEOUT_SECONDS = _int_env("PAYMENT_TIMEOUT_SECONDS", 10)

# Posting quota for non-members
FREE_POST_LIMIT = _int_env("FREE_POST_LIMIT", 5)

CORS_ORIGINS = _list_env("CORS_ORIGINS", "http://localhost:5173")
PORT = _int_env("PORT", 8000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
