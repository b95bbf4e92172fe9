# config.py
"""
VitaFlow — Configuration
========================
Environment-driven settings shared by tools, agents and the API.

Resolution order for each setting:
1. Environment variable (loaded from .env by python-dotenv)
2. Default value
"""

import os
from typing import List, Tuple

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _get_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"⚠️ Config: {key}={raw!r} is not an integer, using {default}")
        return default


def _get_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"⚠️ Config: {key}={raw!r} is not a number, using {default}")
        return default


def _get_models(key: str, default: str) -> List[Tuple[str, bool]]:
    """Parse 'model-a,model-b:legacy' into [(name, legacy), ...]."""
    raw = os.environ.get(key) or default
    models = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        name, _, flag = item.partition(":")
        models.append((name.strip(), flag.strip().lower() == "legacy"))
    return models


# =============================================================================
# SETTINGS
# =============================================================================
GOOGLE_API_KEY = os.environ.get("GOOGLE_API_KEY")

TRIAL_DAYS = _get_int("VITAFLOW_TRIAL_DAYS", 3)

# Ordered fallback list; ":legacy" marks backends without system instructions / JSON mode
GEMINI_MODELS = _get_models(
    "VITAFLOW_GEMINI_MODELS",
    "gemini-2.0-flash,gemini-2.5-flash-lite,gemma-3-27b-it:legacy",
)
GEMINI_TIMEOUT_S = _get_float("VITAFLOW_GEMINI_TIMEOUT_S", 15.0)

DATA_DIR = os.environ.get("VITAFLOW_DATA_DIR") or os.path.join(BASE_DIR, "data")
STORE_FILE = os.path.join(DATA_DIR, "vitaflow_store.json")

DEFAULT_WATER_GOAL_ML = _get_int("VITAFLOW_WATER_GOAL_ML", 2500)

APP_NAME = "vitaflow"
