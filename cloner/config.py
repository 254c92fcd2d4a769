"""
Environment configuration for the cloner service.

Everything is read once at import time. The app entrypoint calls
load_dotenv() before importing anything that reads this module.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    return float(raw) if raw else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    return int(raw) if raw else default


# ── Store ────────────────────────────────────────────────────────────────────

SUPABASE_URL = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

PROJECTS_TABLE = os.getenv("CLONER_PROJECTS_TABLE", "projects")
SCENES_TABLE = os.getenv("CLONER_SCENES_TABLE", "scenes")
VIDEO_BUCKET = os.getenv("CLONER_VIDEO_BUCKET", "videos")
IMAGE_BUCKET = os.getenv("CLONER_IMAGE_BUCKET", "images")

# ── Providers ────────────────────────────────────────────────────────────────

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", "")
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

WAVESPEED_API_KEY = os.getenv("WAVESPEED_API_KEY", "")
WAVESPEED_API_BASE = "https://api.wavespeed.ai/api/v3"

# Kie.ai accepts the WaveSpeed key on accounts provisioned through it
KIE_API_KEY = os.getenv("KIE_API_KEY") or WAVESPEED_API_KEY
KIE_API_BASE = "https://api.kie.ai/api/v1"

PROVIDER_TIMEOUT = _float_env("PROVIDER_TIMEOUT", 60.0)
PROVIDER_MAX_RETRIES = _int_env("PROVIDER_MAX_RETRIES", 2)

# ── Pipeline pacing ──────────────────────────────────────────────────────────

SCENE_CALL_DELAY = _float_env("SCENE_CALL_DELAY", 3.0)      # seconds between per-scene calls
IMAGE_WAIT_SECONDS = _float_env("IMAGE_WAIT_SECONDS", 10.0)  # images → videos gap
POLL_INTERVAL = _float_env("POLL_INTERVAL", 5.0)
MAX_POLL_ATTEMPTS = _int_env("MAX_POLL_ATTEMPTS", 120)

# ── API ──────────────────────────────────────────────────────────────────────

SHARED_SECRET = os.getenv("CLONER_SHARED_SECRET", "")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
PORT = _int_env("PORT", 8000)
