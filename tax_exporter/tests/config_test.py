"""Tests for Exporter Configuration

Tests cover:
- Defaults and JSON loading
- Environment overrides for credentials
- Credential checks per provider
- Worker count clamping
"""

import json

from tax_exporter.core.sources import ALLIUM, BYBIT, HELIUS, HYPERLIQUID, SOLANA_RPC, SYNTHETIC
from tax_exporter.utils.config import DEFAULT_CONFIG_PATH, ExporterConfig, load_config


class TestLoading:
    """Test config file loading."""

    def test_default_file_loads(self):
        config = ExporterConfig.from_dict(load_config(DEFAULT_CONFIG_PATH), environ={})
        assert config.log_level == "INFO"
        assert config.http.max_workers == 8
        assert config.section("allium")["min_interval_sec"] == 1.1

    def test_from_file(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"log_level": "DEBUG", "http": {"timeout_sec": 3}}))

        config = ExporterConfig.from_file(path)

        assert config.log_level == "DEBUG"
        assert config.http.timeout_sec == 3.0
        assert config.http.retry_attempts == 2

    def test_empty_dict_uses_defaults(self):
        config = ExporterConfig.from_dict({}, environ={})
        assert config.http.timeout_sec == 10.0
        assert config.section("missing") == {}

    def test_relative_data_path_is_rooted(self, tmp_path):
        config = ExporterConfig.from_dict({"data_paths": {"export_folder": str(tmp_path)}}, environ={})
        assert config.data_path("export_folder", "data/exports") == tmp_path
        assert config.data_path("log_path", "logs").is_absolute()


class TestEnvironmentOverrides:
    """Test credential overrides from the environment."""

    def test_env_fills_missing_section(self):
        config = ExporterConfig.from_dict({}, environ={"ALLIUM_API_KEY": "k1"})
        assert config.section("allium")["api_key"] == "k1"

    def test_env_overrides_file_value(self):
        data = {"bybit": {"api_key": "file", "api_secret": "file"}}
        config = ExporterConfig.from_dict(data, environ={"BYBIT_API_SECRET": "env"})
        assert config.section("bybit") == {"api_key": "file", "api_secret": "env"}

    def test_empty_env_value_is_ignored(self):
        data = {"helius": {"api_key": "file"}}
        config = ExporterConfig.from_dict(data, environ={"HELIUS_API_KEY": ""})
        assert config.section("helius")["api_key"] == "file"

    def test_input_dict_is_not_mutated(self):
        data = {"allium": {"api_key": ""}}
        ExporterConfig.from_dict(data, environ={"ALLIUM_API_KEY": "k1"})
        assert data == {"allium": {"api_key": ""}}


class TestCredentials:
    """Test provider credential checks."""

    def test_no_credentials(self):
        config = ExporterConfig.from_dict({"hyperliquid": {"enabled": False}}, environ={})
        for provider in (ALLIUM, HELIUS, SOLANA_RPC, BYBIT, HYPERLIQUID, SYNTHETIC):
            assert not config.has_credentials(provider)

    def test_hyperliquid_enabled_by_default(self):
        assert ExporterConfig.from_dict({}, environ={}).has_credentials(HYPERLIQUID)

    def test_bybit_needs_key_and_secret(self):
        only_key = ExporterConfig.from_dict({}, environ={"BYBIT_API_KEY": "k"})
        both = ExporterConfig.from_dict({}, environ={"BYBIT_API_KEY": "k", "BYBIT_API_SECRET": "s"})
        assert not only_key.has_credentials(BYBIT)
        assert both.has_credentials(BYBIT)

    def test_rpc_url(self):
        config = ExporterConfig.from_dict({}, environ={"SOLANA_RPC_URL": "http://localhost:8899"})
        assert config.has_credentials(SOLANA_RPC)


class TestWorkerClamp:
    """Test max_workers bounds."""

    def test_upper_bound(self):
        assert ExporterConfig.from_dict({"http": {"max_workers": 64}}, environ={}).http.max_workers == 20

    def test_lower_bound(self):
        assert ExporterConfig.from_dict({"http": {"max_workers": 0}}, environ={}).http.max_workers == 1
