"""
Centralized configuration with environment variable overrides.

Provider credentials, polling cadence, discovery bounds, and the optional
LLM enrichment model are all configurable here. Nothing is hardcoded in
the orchestrator, planner, or storage logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from ivrmap.logging_context import CallIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag (true/false, yes/no, 1/0, on/off)."""
    raw = os.getenv(env_var, default)
    lowered = str(raw).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class ProviderConfig:
    """Calling provider credentials and per-call options."""

    api_key: str = os.getenv("BLAND_API_KEY", "")
    base_url: str = os.getenv("BLAND_BASE_URL", "https://api.bland.ai/v1")
    request_timeout_sec: float = _safe_float("PROVIDER_TIMEOUT", "15.0")
    max_duration_sec: int = _safe_int("MAX_CALL_DURATION", "300")
    wait_for_greeting: bool = _safe_bool("WAIT_FOR_GREETING", "true")
    voicemail_detect: bool = _safe_bool("VOICEMAIL_DETECT", "true")
    record: bool = _safe_bool("RECORD_CALLS", "true")
    ivr_mode: bool = _safe_bool("IVR_MODE", "true")


@dataclass(frozen=True)
class PollConfig:
    """Status polling cadence and the overall completion timeout."""

    interval_sec: float = _safe_float("POLL_INTERVAL", "5.0")
    min_interval_sec: float = _safe_float("POLL_MIN_INTERVAL", "1.0")
    max_interval_sec: float = _safe_float("POLL_MAX_INTERVAL", "20.0")
    timeout_sec: float = _safe_float("POLL_TIMEOUT", "360.0")


@dataclass(frozen=True)
class DiscoveryConfig:
    """Iteration bounds and persistence location for discovery runs."""

    min_calls: int = _safe_int("MIN_CALLS", "2")
    max_calls: int = _safe_int("MAX_CALLS", "10")
    refine_max_calls: int = _safe_int("REFINE_MAX_CALLS", "2")
    plan_history_window: int = _safe_int("PLAN_HISTORY_WINDOW", "5")
    data_dir: str = os.getenv("DATA_DIR", "data")


@dataclass(frozen=True)
class ModelConfig:
    """Settings for the optional LLM extraction/planning pass."""

    api_key: str = os.getenv("OPENAI_API_KEY", "")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.0")
    extraction_enabled: bool = _safe_bool("LLM_EXTRACTION_ENABLED", "true")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.provider.request_timeout_sec <= 0:
        raise ValueError(
            f"PROVIDER_TIMEOUT must be > 0, got {config.provider.request_timeout_sec}"
        )
    if config.provider.max_duration_sec < 1:
        raise ValueError(
            f"MAX_CALL_DURATION must be >= 1, got {config.provider.max_duration_sec}"
        )
    if config.poll.min_interval_sec <= 0:
        raise ValueError(
            f"POLL_MIN_INTERVAL must be > 0, got {config.poll.min_interval_sec}"
        )
    if config.poll.max_interval_sec < config.poll.min_interval_sec:
        raise ValueError(
            "POLL_MAX_INTERVAL must be >= POLL_MIN_INTERVAL, "
            f"got {config.poll.max_interval_sec} < {config.poll.min_interval_sec}"
        )
    if config.poll.interval_sec <= 0:
        raise ValueError(f"POLL_INTERVAL must be > 0, got {config.poll.interval_sec}")
    if config.poll.timeout_sec <= 0:
        raise ValueError(f"POLL_TIMEOUT must be > 0, got {config.poll.timeout_sec}")
    if config.discovery.min_calls < 1:
        raise ValueError(f"MIN_CALLS must be >= 1, got {config.discovery.min_calls}")
    if config.discovery.max_calls < config.discovery.min_calls:
        raise ValueError(
            "MAX_CALLS must be >= MIN_CALLS, "
            f"got {config.discovery.max_calls} < {config.discovery.min_calls}"
        )
    if config.discovery.refine_max_calls < 1:
        raise ValueError(
            f"REFINE_MAX_CALLS must be >= 1, got {config.discovery.refine_max_calls}"
        )
    if config.discovery.plan_history_window < 0:
        raise ValueError(
            "PLAN_HISTORY_WINDOW must be >= 0, "
            f"got {config.discovery.plan_history_window}"
        )
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(call_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CallIdFilter) for f in handler.filters):
            handler.addFilter(CallIdFilter())
    logger.info("Configuration loaded (data dir: '%s')", config.discovery.data_dir)
    return config


# Singleton instance
settings = load_config()
