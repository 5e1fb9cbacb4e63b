"""Exporter configuration.

Settings come from ``config/exporter_config.json``; provider credentials can
be overridden with environment variables so keys never need to live in the
repository:

    ALLIUM_API_KEY, HELIUS_API_KEY, BYBIT_API_KEY, BYBIT_API_SECRET,
    SOLANA_RPC_URL
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from tax_exporter.core.sources import ALLIUM, HELIUS, SOLANA_RPC, HYPERLIQUID, BYBIT

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = ROOT / "config" / "exporter_config.json"

_ENV_OVERRIDES = {
    ("allium", "api_key"): "ALLIUM_API_KEY",
    ("helius", "api_key"): "HELIUS_API_KEY",
    ("bybit", "api_key"): "BYBIT_API_KEY",
    ("bybit", "api_secret"): "BYBIT_API_SECRET",
    ("solana_rpc", "url"): "SOLANA_RPC_URL",
}


def load_config(config_path: str | Path) -> dict:
    """Load configuration from JSON file."""
    with open(config_path, "r") as f:
        return json.load(f)


@dataclass(frozen=True)
class HttpSettings:
    timeout_sec: float = 10.0
    retry_attempts: int = 2
    max_workers: int = 8


@dataclass(frozen=True)
class ExporterConfig:
    raw: Mapping = field(default_factory=dict)
    http: HttpSettings = field(default_factory=HttpSettings)

    @classmethod
    def from_dict(cls, data: dict, environ: Optional[Mapping[str, str]] = None) -> "ExporterConfig":
        environ = os.environ if environ is None else environ
        merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
        for (section, key), env_name in _ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                merged.setdefault(section, {})[key] = value

        http_cfg = merged.get("http", {})
        http = HttpSettings(
            timeout_sec=float(http_cfg.get("timeout_sec", 10.0)),
            retry_attempts=int(http_cfg.get("retry_attempts", 2)),
            # Upstream RPC providers throttle aggressively above ~20 in-flight calls
            max_workers=max(1, min(int(http_cfg.get("max_workers", 8)), 20)),
        )
        return cls(raw=merged, http=http)

    @classmethod
    def from_file(cls, config_path: str | Path = DEFAULT_CONFIG_PATH) -> "ExporterConfig":
        return cls.from_dict(load_config(config_path))

    def section(self, name: str) -> dict:
        return dict(self.raw.get(name, {}))

    @property
    def log_level(self) -> str:
        return self.raw.get("log_level", "INFO")

    def data_path(self, key: str, default: str) -> Path:
        path = Path(self.raw.get("data_paths", {}).get(key, default))
        return path if path.is_absolute() else ROOT / path

    def has_credentials(self, provider: str) -> bool:
        """Whether ``provider`` has enough configuration to be called."""
        if provider in (ALLIUM, HELIUS):
            return bool(self.section(provider).get("api_key"))
        if provider == BYBIT:
            bybit = self.section(BYBIT)
            return bool(bybit.get("api_key") and bybit.get("api_secret"))
        if provider == SOLANA_RPC:
            return bool(self.section(SOLANA_RPC).get("url"))
        if provider == HYPERLIQUID:
            # Public info endpoint, only needs to be enabled
            return bool(self.section(HYPERLIQUID).get("enabled", True))
        return False
