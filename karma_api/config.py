"""
Configuration module for the Karma Ledger service.

Centralizes all configuration with environment variable support.
The protocol constants (energy per sunrise, energy per interaction,
seconds per day) live in karma.constants and are not configurable.
"""

import os
from pathlib import Path
from typing import Any, Dict

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("KARMA_ENV", "dev")  # dev|stage|prod

# Storage
DB_PATH = os.getenv("KARMA_DB_PATH", "data/karma.db")

# Rate limits (requests per minute, per client)
CREATE_RPM = int(os.getenv("CREATE_RPM", "60"))
INTERACT_RPM = int(os.getenv("INTERACT_RPM", "600"))
SUNRISE_RPM = int(os.getenv("SUNRISE_RPM", "60"))

# Proof acceptance window
PROOF_FRESHNESS_SECONDS = int(os.getenv("PROOF_FRESHNESS_SECONDS", "300"))
MAX_CLOCK_SKEW_SECONDS = int(os.getenv("MAX_CLOCK_SKEW_SECONDS", "30"))

# Logging
LOG_LEVEL = os.getenv("KARMA_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("KARMA_LOG_JSON", "1").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("KARMA_LOG_FILE") or None


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Sanity-check configured values.
    Returns dict of check name -> passed.
    """
    return {
        "db_dir_writable": _dir_writable(Path(DB_PATH).parent),
        "rate_limits_positive": min(CREATE_RPM, INTERACT_RPM, SUNRISE_RPM) > 0,
        "freshness_positive": PROOF_FRESHNESS_SECONDS > 0,
        "skew_non_negative": MAX_CLOCK_SKEW_SECONDS >= 0,
    }


def _dir_writable(path: Path) -> bool:
    probe = path
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    return os.access(probe, os.W_OK)


def describe() -> Dict[str, Any]:
    """Non-secret view of the active configuration (for /health)."""
    return {
        "env": ENV,
        "db_path": DB_PATH,
        "create_rpm": CREATE_RPM,
        "interact_rpm": INTERACT_RPM,
        "sunrise_rpm": SUNRISE_RPM,
        "proof_freshness_seconds": PROOF_FRESHNESS_SECONDS,
        "max_clock_skew_seconds": MAX_CLOCK_SKEW_SECONDS,
    }


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("KARMA_DEBUG", "").lower() in ("1", "true", "yes")
