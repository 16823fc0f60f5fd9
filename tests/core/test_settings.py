"""Tests for callbatch.core.settings."""

import pytest
from pydantic import ValidationError

from callbatch.core.settings import CallBatchSettings, clear_settings_cache, get_settings
from callbatch.core.types import Address


class TestDefaults:
    def test_defaults(self):
        s = CallBatchSettings()
        assert s.debug is False
        assert s.log_level == "INFO"
        assert s.log_format == "console"
        assert s.gas_limit == 30_000_000
        assert s.chain_id == 1
        assert s.fallback_aggregator is None
        assert s.fallback_address is None
        assert s.caller_address is None


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CALLBATCH_GAS_LIMIT", "1000000")
        monkeypatch.setenv("CALLBATCH_CHAIN_ID", "10")
        s = CallBatchSettings()
        assert s.gas_limit == 1_000_000
        assert s.chain_id == 10

    def test_log_level_is_upper_cased(self, monkeypatch):
        monkeypatch.setenv("CALLBATCH_LOG_LEVEL", "debug")
        assert CallBatchSettings().log_level == "DEBUG"

    def test_fallback_address_is_normalised(self, monkeypatch):
        monkeypatch.setenv("CALLBATCH_FALLBACK_AGGREGATOR", "AB" * 20)
        s = CallBatchSettings()
        assert s.fallback_aggregator == "0x" + "ab" * 20
        assert s.fallback_address == Address(b"\xab" * 20)

    def test_empty_fallback_means_none(self, monkeypatch):
        monkeypatch.setenv("CALLBATCH_FALLBACK_AGGREGATOR", "")
        assert CallBatchSettings().fallback_address is None

    def test_invalid_address_rejected(self, monkeypatch):
        monkeypatch.setenv("CALLBATCH_DEFAULT_CALLER", "0x1234")
        with pytest.raises(ValidationError):
            CallBatchSettings()

    def test_non_positive_gas_limit_rejected(self):
        with pytest.raises(ValidationError):
            CallBatchSettings(gas_limit=0)

    def test_invalid_log_format_rejected(self):
        with pytest.raises(ValidationError):
            CallBatchSettings(log_format="xml")

    def test_env_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("CALLBATCH_CHAIN_ID=42\n")
        monkeypatch.chdir(tmp_path)
        assert CallBatchSettings().chain_id == 42


class TestCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_clear_settings_cache(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("CALLBATCH_CHAIN_ID", "5")
        assert get_settings().chain_id == first.chain_id
        clear_settings_cache()
        assert get_settings().chain_id == 5

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("CALLBATCH_GAS_LIMIT", "777")
        reloaded = get_settings(_force_reload=True)
        assert reloaded is not first
        assert reloaded.gas_limit == 777
