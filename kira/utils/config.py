"""
Configuration Management
========================

All environment-driven settings live here, validated and typed once at
startup. Only service credentials and a few operational knobs come from
the environment; the assistant's behavior does not.

Usage:
    from kira.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.history.file)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ValueError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ValueError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    """Get an optional environment variable with a default."""
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    """Get an optional integer environment variable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        print(f"Warning: {name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    """Get an optional float environment variable (used for timeouts)."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        print(f"Warning: {name} is not a valid number, using default: {default}")
        return default


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class SlackConfig:
    """Slack API configuration."""
    bot_token: str      # xoxb-... token for bot operations
    app_token: str      # xapp-... token for Socket Mode
    signing_secret: str


@dataclass(frozen=True)
class OpenAIConfig:
    """Reasoning service configuration."""
    api_key: str
    model: str
    timeout_seconds: float  # Hard bound on one reasoning request


@dataclass(frozen=True)
class WalletServiceConfig:
    """Custodial wallet backend configuration."""
    base_url: str
    token: str | None
    timeout_seconds: float


@dataclass(frozen=True)
class HistoryConfig:
    """Conversation history configuration."""
    file: Path
    max_messages: int


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.slack.bot_token
        config.wallet.base_url
        config.history.max_messages
    """
    slack: SlackConfig
    openai: OpenAIConfig
    wallet: WalletServiceConfig
    history: HistoryConfig
    log_level: str


def load_config() -> Config:
    """
    Load and validate all configuration from the environment.

    Raises:
        ValueError: If required configuration is missing
    """
    load_dotenv()

    return Config(
        slack=SlackConfig(
            bot_token=_required("SLACK_BOT_TOKEN"),
            app_token=_required("SLACK_APP_TOKEN"),
            signing_secret=_required("SLACK_SIGNING_SECRET"),
        ),
        openai=OpenAIConfig(
            api_key=_required("OPENAI_API_KEY"),
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            timeout_seconds=_optional_float("REASONING_TIMEOUT_SECONDS", 20.0),
        ),
        wallet=WalletServiceConfig(
            base_url=_required("WALLET_SERVICE_URL").rstrip("/"),
            token=os.getenv("WALLET_SERVICE_TOKEN"),
            timeout_seconds=_optional_float("WALLET_SERVICE_TIMEOUT_SECONDS", 15.0),
        ),
        history=HistoryConfig(
            file=Path(_optional("HISTORY_FILE", "chat_history.json")),
            max_messages=_optional_int("HISTORY_MAX_MESSAGES", 10),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """
    Get the configuration, loading it on first access.

    Returns:
        Config: The application configuration
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance
