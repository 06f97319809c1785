"""
volunteer_portal.config — YAML Configuration Loader
====================================================

**Why this file exists:**
This module reads ``config.yaml`` for **infrastructure-only** settings
(portal identity, API port, registration retry tuning).  Secrets and the
database URL stay in the environment (``.env``).

Usage::

    from volunteer_portal.config import load_config

    cfg = load_config()                  # reads ./config.yaml by default
    print(cfg.portal_name)               # "Volunteer Portal"
    print(cfg.register_retry_attempts)   # 3
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PortalConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    portal_name: str

    # API
    api_port: int

    # Registration contention handling
    register_retry_attempts: int = 3      # Total tries for transient store errors
    register_retry_backoff_ms: int = 50   # Base delay, doubled per attempt
    lock_timeout_seconds: float = 10.0    # Max wait for the per-event mutex


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PortalConfig:
    """Read *path* and return a :class:`PortalConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If a tuning value is out of range.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    cfg = PortalConfig(
        portal_name=raw["portal_name"],
        api_port=int(raw["api_port"]),
        register_retry_attempts=int(raw.get("register_retry_attempts", 3)),
        register_retry_backoff_ms=int(raw.get("register_retry_backoff_ms", 50)),
        lock_timeout_seconds=float(raw.get("lock_timeout_seconds", 10.0)),
    )

    if cfg.register_retry_attempts < 1:
        raise ValueError("register_retry_attempts must be at least 1")
    if cfg.register_retry_backoff_ms < 0:
        raise ValueError("register_retry_backoff_ms cannot be negative")
    if cfg.lock_timeout_seconds <= 0:
        raise ValueError("lock_timeout_seconds must be positive")

    return cfg
