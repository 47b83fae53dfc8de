"""Configuration management for the WebAI backend."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from webai.llm.models import CompletionSettings, ProviderConfig, ProviderType
from webai.llm.rate_limiting.models import RateLimitConfig

COMPLETION_KINDS = ("generation", "prompt", "chat", "site")


class Configuration:
    """Manages configuration and environment variables for the backend."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self._config = self._load_yaml_config(config_path)

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Configuration":
        """Build a configuration from an in-memory dict (no YAML file)."""
        instance = cls.__new__(cls)
        instance._config = config
        return instance

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self, config_path: str | None) -> dict[str, Any]:
        """Load configuration from YAML file."""
        path = (
            config_path
            or os.getenv("WEBAI_CONFIG")
            or os.path.join(os.path.dirname(__file__), "config.yaml")
        )
        with open(path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    def _section(self, name: str) -> dict[str, Any]:
        section = self._config.get(name)
        if not isinstance(section, dict):
            raise ValueError(f"'{name}' must be configured in config.yaml")
        return section

    @property
    def llm_api_key(self) -> str:
        """Get the API key for the active LLM provider.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        active_provider = self._section("llm").get("active", "openai")

        provider_key_map = {
            "openai": "OPENAI_API_KEY",
            "openrouter": "OPENROUTER_API_KEY",
            "groq": "GROQ_API_KEY",
        }

        env_key = provider_key_map.get(active_provider)
        if not env_key:
            raise ValueError(
                f"Unknown provider '{active_provider}' - no API key mapping found"
            )

        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables "
                f"for provider '{active_provider}'"
            )

        return api_key

    def get_llm_config(self) -> dict[str, Any]:
        """Get active LLM provider configuration from YAML."""
        llm_config = self._section("llm")
        active_provider = llm_config.get("active", "openai")
        providers = llm_config.get("providers", {})

        if active_provider not in providers:
            raise ValueError(
                f"Active provider '{active_provider}' not found in providers config"
            )

        provider_config = providers[active_provider]
        if "base_url" not in provider_config:
            raise ValueError(
                f"llm.providers.{active_provider}.base_url must be configured"
            )
        return provider_config

    def get_provider_config(self, api_key: str | None = None) -> ProviderConfig:
        """Build the typed provider configuration for the LLM client."""
        llm_config = self._section("llm")
        provider_config = self.get_llm_config()
        http_config = provider_config.get("http_client", {})

        max_connections = http_config.get("max_connections", 20)
        max_keepalive = http_config.get("max_keepalive", 10)
        if max_connections < 1:
            raise ValueError("http_client.max_connections must be at least 1")
        if max_keepalive > max_connections:
            raise ValueError("http_client.max_keepalive must be <= max_connections")

        return ProviderConfig(
            provider=ProviderType(llm_config.get("active", "openai")),
            base_url=provider_config["base_url"],
            api_key=api_key if api_key is not None else self.llm_api_key,
            connect_timeout=http_config.get("connect_timeout", 10.0),
            read_timeout=http_config.get("read_timeout", 300.0),
            write_timeout=http_config.get("write_timeout", 10.0),
            pool_timeout=http_config.get("pool_timeout", 10.0),
            max_connections=max_connections,
            max_keepalive=max_keepalive,
        )

    def get_completion_settings(self) -> dict[str, CompletionSettings]:
        """Get model settings for every completion kind.

        Raises:
            ValueError: If a completion kind is missing or incomplete.
        """
        completions = self._section("llm").get("completions", {})
        settings: dict[str, CompletionSettings] = {}
        for kind in COMPLETION_KINDS:
            if kind not in completions:
                raise ValueError(
                    f"llm.completions.{kind} must be explicitly configured "
                    "in config.yaml"
                )
            entry = completions[kind]
            for key in ("model", "max_tokens"):
                if key not in entry:
                    raise ValueError(
                        f"llm.completions.{kind}.{key} must be explicitly configured"
                    )
            if entry["max_tokens"] < 1:
                raise ValueError(f"llm.completions.{kind}.max_tokens must be positive")
            settings[kind] = CompletionSettings.from_dict(entry)
        return settings

    def get_chat_history_limit(self) -> int:
        """Number of most recent chat messages forwarded to the model."""
        limit = self._config.get("chat", {}).get("history_limit", 20)
        if not isinstance(limit, int) or limit < 1:
            raise ValueError("chat.history_limit must be a positive integer")
        return limit

    def get_server_config(self) -> dict[str, Any]:
        """Get HTTP server configuration."""
        server_config = self._section("server")
        for key in ("host", "port"):
            if key not in server_config:
                raise ValueError(f"server.{key} must be explicitly configured")
        if not 0 < int(server_config["port"]) < 65536:
            raise ValueError("server.port must be a valid TCP port")
        return {
            "host": server_config["host"],
            "port": int(server_config["port"]),
            "cors_origins": server_config.get("cors_origins", []),
            "public_base_url": server_config.get("public_base_url", "").rstrip("/"),
        }

    def get_database_config(self) -> dict[str, Any]:
        """Get database configuration."""
        database_config = self._section("database")
        if "path" not in database_config:
            raise ValueError("database.path must be explicitly configured")
        return database_config

    def get_rate_limit_policies(self) -> dict[str, RateLimitConfig]:
        """Get named fixed-window policies.

        Raises:
            ValueError: If the default policy is missing or a policy is invalid.
        """
        policies = self._section("rate_limits").get("policies", {})
        if "default" not in policies:
            raise ValueError("rate_limits.policies.default must be configured")

        result = {}
        for name, policy in policies.items():
            for key in ("window_seconds", "max_requests"):
                if key not in policy:
                    raise ValueError(
                        f"rate_limits.policies.{name}.{key} must be configured"
                    )
            result[name] = RateLimitConfig.from_dict(policy)
        return result

    def get_rate_limit_max_entries(self) -> int:
        return int(self._section("rate_limits").get("max_entries", 10000))

    def get_github_config(self) -> dict[str, Any]:
        """Get GitHub publishing configuration; the token comes from GITHUB_TOKEN."""
        github_config = {**self._section("github")}
        for key in ("api_url", "owner", "owner_type"):
            if key not in github_config:
                raise ValueError(f"github.{key} must be explicitly configured")
        if github_config["owner_type"] not in ("org", "user"):
            raise ValueError("github.owner_type must be 'org' or 'user'")
        github_config["token"] = os.getenv("GITHUB_TOKEN", "")
        return github_config

    def get_launch_config(self) -> dict[str, Any]:
        """Get token launch configuration; the API key comes from PUMPPORTAL_API_KEY."""
        launch_config = {**self._section("launch")}
        if "rpc_url" not in launch_config:
            raise ValueError("launch.rpc_url must be explicitly configured")
        launch_config["api_key"] = os.getenv("PUMPPORTAL_API_KEY", "")
        return launch_config

    def get_upload_config(self) -> dict[str, Any]:
        """Get asset upload configuration."""
        upload_config = self._section("uploads")
        max_size_mb = upload_config.get("max_size_mb", 5)
        if max_size_mb <= 0:
            raise ValueError("uploads.max_size_mb must be positive")
        return {
            "directory": upload_config.get("directory", "uploads"),
            "max_size_bytes": int(max_size_mb * 1024 * 1024),
            "allowed_types": list(upload_config.get("allowed_types", [])),
        }

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})
