"""
Central configuration for the purchase bill client.

API location, timeouts, and price-lookup tuning are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. config/client_settings.json  (admin-editable, persisted)
  2. Environment variables
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

DEFAULT_API_BASE_URL = "http://localhost:8080/api/v1"
DEFAULT_CONFIG_DIR   = PROJECT_ROOT / "config"


@dataclass
class Config:
    # --- API endpoint ---
    api_base_url: str = field(
        default_factory=lambda: os.getenv("API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")
    )
    # Sent as "Authorization: Bearer <token>" when set.
    api_token: Optional[str] = field(
        default_factory=lambda: os.getenv("API_TOKEN") or None
    )
    request_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("API_TIMEOUT", "30"))
    )
    user_agent: str = "Bill-Tracker-Client/1.0"

    # --- Price lookup ---
    price_lookup_debounce_ms: int = field(
        default_factory=lambda: int(os.getenv("PRICE_LOOKUP_DEBOUNCE_MS", "300"))
    )
    # Only the last (supplier, material, unit, date) combination that stays
    # unchanged for this long is sent to the server.

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from client_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(DEFAULT_CONFIG_DIR)))
        settings_file = config_dir / "client_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "api_base_url":             str,
            "api_token":                str,
            "request_timeout_seconds":  float,
            "price_lookup_debounce_ms": int,
            "user_agent":               str,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load client_settings.json: %s", exc)
        self.api_base_url = self.api_base_url.rstrip("/")

    @property
    def price_lookup_delay(self) -> float:
        """Debounce delay in seconds."""
        return max(self.price_lookup_debounce_ms, 0) / 1000.0
