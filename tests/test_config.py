"""Tests for configuration loading and validation."""

import pytest

from ivrmap.config import (
    AppConfig,
    DiscoveryConfig,
    ModelConfig,
    PollConfig,
    ProviderConfig,
    _safe_bool,
    _safe_float,
    _safe_int,
    _validate_config,
)


def _with(instance, **values):
    """Copy a frozen config dataclass with some fields overridden."""
    copy = instance.__class__.__new__(instance.__class__)
    for name, value in vars(instance).items():
        object.__setattr__(copy, name, values.get(name, value))
    return copy


def _config(**sections) -> AppConfig:
    config = AppConfig()
    return _with(config, **sections)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_invalid_temperature_too_high(self):
        config = _config(model=_with(ModelConfig(), llm_temperature=3.0))
        with pytest.raises(ValueError, match="LLM_TEMPERATURE"):
            _validate_config(config)

    def test_invalid_temperature_negative(self):
        config = _config(model=_with(ModelConfig(), llm_temperature=-0.5))
        with pytest.raises(ValueError, match="LLM_TEMPERATURE"):
            _validate_config(config)

    def test_max_interval_below_min(self):
        poll = _with(PollConfig(), min_interval_sec=5.0, max_interval_sec=2.0)
        with pytest.raises(ValueError, match="POLL_MAX_INTERVAL"):
            _validate_config(_config(poll=poll))

    def test_non_positive_poll_timeout(self):
        with pytest.raises(ValueError, match="POLL_TIMEOUT"):
            _validate_config(_config(poll=_with(PollConfig(), timeout_sec=0.0)))

    def test_min_calls_zero(self):
        discovery = _with(DiscoveryConfig(), min_calls=0)
        with pytest.raises(ValueError, match="MIN_CALLS"):
            _validate_config(_config(discovery=discovery))

    def test_max_calls_below_min_calls(self):
        discovery = _with(DiscoveryConfig(), min_calls=4, max_calls=3)
        with pytest.raises(ValueError, match="MAX_CALLS"):
            _validate_config(_config(discovery=discovery))

    def test_provider_timeout(self):
        provider = _with(ProviderConfig(), request_timeout_sec=0)
        with pytest.raises(ValueError, match="PROVIDER_TIMEOUT"):
            _validate_config(_config(provider=provider))


class TestEnvParsing:
    def test_safe_int_parsing(self):
        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_float_parsing(self):
        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)

    def test_safe_int_bad_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("IVRMAP_TEST_INT", "ten")
        with pytest.raises(ValueError, match="IVRMAP_TEST_INT"):
            _safe_int("IVRMAP_TEST_INT", "1")

    @pytest.mark.parametrize("raw,expected", [("true", True), ("YES", True), ("0", False), ("off", False)])
    def test_safe_bool_values(self, monkeypatch, raw, expected):
        monkeypatch.setenv("IVRMAP_TEST_BOOL", raw)
        assert _safe_bool("IVRMAP_TEST_BOOL", "false") is expected

    def test_safe_bool_bad_value(self, monkeypatch):
        monkeypatch.setenv("IVRMAP_TEST_BOOL", "maybe")
        with pytest.raises(ValueError, match="IVRMAP_TEST_BOOL"):
            _safe_bool("IVRMAP_TEST_BOOL", "false")


class TestDefaults:
    def test_poll_defaults(self):
        poll = PollConfig()
        assert poll.min_interval_sec <= poll.interval_sec <= poll.max_interval_sec

    def test_default_model(self):
        assert ModelConfig().llm_model
