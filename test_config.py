#!/usr/bin/env python3
"""
Tests for configuration loading: YAML files, explicit-key validation and
secrets taken from the environment.
"""

import copy

import pytest
import yaml

from webai.config import Configuration
from webai.llm.models import ProviderType

BASE_CONFIG = {
    "server": {"host": "127.0.0.1", "port": 8080, "cors_origins": ["https://a.test"]},
    "llm": {
        "active": "openai",
        "providers": {"openai": {"base_url": "https://llm.test/v1"}},
        "completions": {
            kind: {"model": "gpt-4o-mini", "max_tokens": 500}
            for kind in ("generation", "prompt", "chat", "site")
        },
    },
    "database": {"path": "test.db"},
    "rate_limits": {
        "policies": {
            "default": {"window_seconds": 60, "max_requests": 30},
            "ai_generation": {"window_seconds": 300, "max_requests": 5},
        },
    },
    "github": {"api_url": "https://api.github.test", "owner": "bots", "owner_type": "org"},
    "launch": {"rpc_url": "https://rpc.test"},
    "uploads": {"directory": "files", "max_size_mb": 2, "allowed_types": ["image/png"]},
}


def config_with(**changes) -> Configuration:
    data = copy.deepcopy(BASE_CONFIG)
    for dotted, value in changes.items():
        *parents, leaf = dotted.split("__")
        node = data
        for part in parents:
            node = node[part]
        if value is None:
            node.pop(leaf, None)
        else:
            node[leaf] = value
    return Configuration.from_dict(data)


class TestLoading:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(BASE_CONFIG))
        config = Configuration(str(path))
        assert config.get_server_config()["port"] == 8080

    def test_env_points_at_file(self, tmp_path, monkeypatch):
        path = tmp_path / "other.yaml"
        path.write_text(yaml.safe_dump({**BASE_CONFIG, "database": {"path": "x.db"}}))
        monkeypatch.setenv("WEBAI_CONFIG", str(path))
        assert Configuration().get_database_config()["path"] == "x.db"

    def test_yaml_must_be_a_dict(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="YAML dict"):
            Configuration(str(path))

    def test_packaged_defaults_are_complete(self, monkeypatch):
        monkeypatch.delenv("WEBAI_CONFIG", raising=False)
        config = Configuration()
        assert set(config.get_completion_settings()) == {
            "generation", "prompt", "chat", "site",
        }
        policies = config.get_rate_limit_policies()
        assert policies["ai_generation"].max_requests == 5
        assert policies["launch"].window_seconds == 600


class TestSections:
    def test_server(self):
        server = config_with().get_server_config()
        assert server == {
            "host": "127.0.0.1",
            "port": 8080,
            "cors_origins": ["https://a.test"],
            "public_base_url": "",
        }

    @pytest.mark.parametrize("changes,message", [
        ({"server__port": None}, "server.port"),
        ({"server__port": 70000}, "valid TCP port"),
        ({"database__path": None}, "database.path"),
        ({"llm__completions__chat": None}, "llm.completions.chat"),
        ({"llm__completions__site": {"model": "m"}}, "llm.completions.site.max_tokens"),
        ({"llm__active": "groq"}, "not found in providers"),
        ({"rate_limits__policies": {"strict": {"window_seconds": 1, "max_requests": 1}}},
         "policies.default"),
        ({"github__owner_type": "team"}, "owner_type"),
        ({"launch__rpc_url": None}, "launch.rpc_url"),
        ({"uploads__max_size_mb": 0}, "max_size_mb"),
    ])
    def test_missing_or_invalid(self, changes, message):
        config = config_with(**changes)
        with pytest.raises(ValueError, match=message):
            config.get_server_config()
            config.get_database_config()
            config.get_completion_settings()
            config.get_llm_config()
            config.get_rate_limit_policies()
            config.get_github_config()
            config.get_launch_config()
            config.get_upload_config()

    def test_missing_section(self):
        config = Configuration.from_dict({})
        with pytest.raises(ValueError, match="'database' must be configured"):
            config.get_database_config()

    def test_completion_settings(self):
        settings = config_with(
            llm__completions__generation={
                "model": "gpt-4o", "max_tokens": 16000, "json_mode": True,
            }
        ).get_completion_settings()
        assert settings["generation"].model == "gpt-4o"
        assert settings["generation"].json_mode is True
        assert settings["chat"].json_mode is False

    def test_upload_limits_in_bytes(self):
        uploads = config_with().get_upload_config()
        assert uploads == {
            "directory": "files",
            "max_size_bytes": 2 * 1024 * 1024,
            "allowed_types": ["image/png"],
        }

    def test_history_limit(self):
        assert config_with().get_chat_history_limit() == 20
        assert config_with(chat={"history_limit": 5}).get_chat_history_limit() == 5
        with pytest.raises(ValueError):
            config_with(chat={"history_limit": 0}).get_chat_history_limit()


class TestSecrets:
    def test_provider_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        provider = config_with().get_provider_config()
        assert provider.provider == ProviderType.OPENAI
        assert provider.api_key == "sk-env"
        assert provider.base_url == "https://llm.test/v1"

    def test_missing_provider_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            config_with().get_provider_config()

    def test_explicit_key_skips_env(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert config_with().get_provider_config(api_key="sk-x").api_key == "sk-x"

    def test_github_and_launch_secrets(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp-test")
        monkeypatch.delenv("PUMPPORTAL_API_KEY", raising=False)
        config = config_with()
        assert config.get_github_config()["token"] == "ghp-test"
        assert config.get_launch_config()["api_key"] == ""
