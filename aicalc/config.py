"""Environment variable loading and configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def get_env(key: str, default: str | None = None) -> str:
    """Get an environment variable or raise if missing and no default."""
    value = os.getenv(key, default)
    if value is None:
        raise ValueError(f"Missing required environment variable: {key}")
    return value


def get_bool_env(key: str, default: bool) -> bool:
    """Read a boolean flag such as ``true``/``0``; raise on anything else."""
    raw = os.getenv(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Environment variable {key} must be a boolean, got {raw!r}")


# Engine policy (read when an engine is built, so tests can monkeypatch)
STRICT_ARCHITECTURE_ENV = "AICALC_STRICT_ARCHITECTURE"
KV_CACHE_TOKEN_BASIS_ENV = "AICALC_KV_CACHE_TOKEN_BASIS"
DEFAULT_STRICT_ARCHITECTURE = True
DEFAULT_KV_CACHE_TOKEN_BASIS = "actual_tokens"

# Paths
BUNDLED_CATALOG_DIR = Path(__file__).resolve().parent / "catalogs" / "data"
CATALOG_DIR = Path(get_env("AICALC_CATALOG_DIR", str(BUNDLED_CATALOG_DIR)))
EXPORT_DIR = _PROJECT_ROOT / "output"

# Hugging Face Hub access (token optional, only needed for gated repos)
HF_TOKEN = os.getenv("HF_TOKEN")
HF_TIMEOUT = float(get_env("HF_TIMEOUT", "30"))
