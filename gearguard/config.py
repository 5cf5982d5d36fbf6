# gearguard/config.py
# Environment-aware configuration for the GearGuard backend

import os
from typing import Literal

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# JWT configuration
SECRET_KEY = os.environ.get("SECRET_KEY", "gearguard-dev-secret")
ALGORITHM = "HS256"

# Token lifetime
ACCESS_TOKEN_MINUTES = int(os.environ.get("ACCESS_TOKEN_MINUTES", "60"))

# Database configuration
# DATABASE_URL takes precedence (managed Postgres); falls back to SQLite for local development
DATABASE_URL = os.environ.get("DATABASE_URL", "").strip()
DATABASE_PATH = os.environ.get("DATABASE_PATH", "gearguard.db")

# CORS origins (expand for staging/prod)
CORS_ORIGINS = [
    "http://localhost:5173",  # Vite dev server
    "http://127.0.0.1:5173",
]

if IS_STAGING or IS_PROD:
    extra_origins = os.environ.get("CORS_ORIGINS", "")
    if extra_origins:
        CORS_ORIGINS.extend(origin.strip() for origin in extra_origins.split(",") if origin.strip())

# Payment provider (Stripe Checkout)
STRIPE_SECRET = os.environ.get("STRIPE_SECRET", "")
STRIPE_API_BASE = os.environ.get("STRIPE_API_BASE", "https://api.stripe.com/v1").rstrip("/")
SITE_DOMAIN = os.environ.get("SITE_DOMAIN", "http://localhost:5173").rstrip("/")

# Image host (imgbb)
IMGBB_API_KEY = os.environ.get("IMGBB_API_KEY", "")
IMGBB_UPLOAD_URL = os.environ.get("IMGBB_UPLOAD_URL", "https://api.imgbb.com/1/upload")

# Outbound HTTP
HTTP_TIMEOUT_SECONDS = int(os.environ.get("HTTP_TIMEOUT_SECONDS", "20"))

# Fallback avatar for rosters
DEFAULT_USER_PHOTO = os.environ.get("DEFAULT_USER_PHOTO", "https://i.ibb.co/5xVqcD1/user.png")

# Database type detection
IS_POSTGRES = DATABASE_URL.startswith(("postgres://", "postgresql://"))

print(f"[CONFIG] Environment: {ENV}")
print(f"[CONFIG] Database: {'PostgreSQL' if IS_POSTGRES else 'SQLite (local dev)'}")
print(f"[CONFIG] Access token: {ACCESS_TOKEN_MINUTES} minutes")
print(f"[CONFIG] Stripe configured: {bool(STRIPE_SECRET)}")
print(f"[CONFIG] Image host configured: {bool(IMGBB_API_KEY)}")
