"""Configuration management for the streaming chat client."""

import os
from dataclasses import dataclass
from typing import Any

import yaml
from dotenv import load_dotenv

from . import logging_utils

API_KEY_ENV = "CHATSTREAM_API_KEY"
ENV_TAG_ENV = "CHATSTREAM_ENV"
BASE_URL_ENV = "CHATSTREAM_BASE_URL"

TIMEOUT_KEYS = ("connect", "read", "write", "pool")


class Configuration:
    """Manages configuration and environment variables for the chat client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self._config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self._config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def api_key(self) -> str:
        """Get the chat API key.

        Returns:
            The API key as a string.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        api_key = os.getenv(API_KEY_ENV, "").strip()
        if not api_key:
            raise ValueError(
                f"API key '{API_KEY_ENV}' not found in environment variables"
            )
        return api_key

    @property
    def env_tag(self) -> str | None:
        """Get the environment tag injected into request inputs."""
        env_tag = os.getenv(ENV_TAG_ENV)
        if env_tag:
            return env_tag
        return self.get_client_config().get("env")

    @property
    def base_url(self) -> str:
        """Get the API base URL, preferring the environment override."""
        return os.getenv(BASE_URL_ENV) or self.get_client_config()["base_url"]

    def get_client_config(self) -> dict[str, Any]:
        """Get client configuration from YAML.

        Returns:
            Client configuration dictionary with validated values.

        Raises:
            ValueError: If required client parameters are missing or invalid.
        """
        client_config = self._config.get("client", {})

        required_keys = ["base_url", "endpoint", "timeouts"]
        for key in required_keys:
            if key not in client_config:
                raise ValueError(
                    f"client.{key} must be explicitly configured in config.yaml"
                )

        timeouts = client_config["timeouts"]
        if not isinstance(timeouts, dict):
            raise ValueError("client.timeouts must be a mapping")

        for key in TIMEOUT_KEYS:
            value = timeouts.get(key)
            if value is not None and value <= 0:
                raise ValueError(
                    f"client.timeouts.{key} must be positive or null, got {value}"
                )

        chunk_size = client_config.get("chunk_size")
        if chunk_size is not None and chunk_size < 1:
            raise ValueError("client.chunk_size must be at least 1")

        return client_config

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return self._config.get("logging", {})

    def configure_logging(self) -> None:
        """Apply ``logging.level`` from YAML to the root logger."""
        level = self.get_logging_config().get("level", "INFO")
        logging_utils.configure_logging(level)


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one streaming chat client."""
    base_url: str = "https://api.dify.ai/v1"
    endpoint: str = "/chat-messages"
    env: str | None = None

    # Network timeouts in seconds; None disables the timeout
    connect_timeout: float | None = 10.0
    read_timeout: float | None = None
    write_timeout: float | None = 10.0
    pool_timeout: float | None = 10.0

    chunk_size: int | None = None

    @property
    def url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.endpoint.lstrip("/")

    @classmethod
    def from_configuration(cls, config: Configuration) -> "ClientConfig":
        """Build client settings from a loaded Configuration."""
        client_config = config.get_client_config()
        timeouts = client_config["timeouts"]
        return cls(
            base_url=config.base_url,
            endpoint=client_config["endpoint"],
            env=config.env_tag,
            connect_timeout=timeouts.get("connect"),
            read_timeout=timeouts.get("read"),
            write_timeout=timeouts.get("write"),
            pool_timeout=timeouts.get("pool"),
            chunk_size=client_config.get("chunk_size"),
        )
