"""Tests for configuration loading."""

import argparse

import pytest

from npm_resolver.config import RegistryConfig
from npm_resolver.constants import Constants
from npm_resolver.errors import ConfigError


class TestRegistryConfigDefaults:
    def test_defaults(self):
        config = RegistryConfig()

        assert config.registry_url == "https://registry.npmjs.org"
        assert config.cache_max_bytes == 40 * 1024 * 1024
        assert config.positive_ttl == 60
        assert config.negative_ttl == 300
        assert config.exclude_keys == Constants.PACKAGE_CONFIG_EXCLUDE_KEYS

    @pytest.mark.parametrize("kwargs", [
        {"registry_url": ""},
        {"cache_max_bytes": 0},
        {"positive_ttl": -1},
        {"timeout": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ConfigError):
            RegistryConfig(**kwargs)


class TestRegistryConfigFromEnv:
    """Tests for environment configuration."""

    def test_registry_url_from_env(self):
        config = RegistryConfig.from_env({"NPM_REGISTRY_URL": "https://mirror.example.com/"})
        assert config.registry_url == "https://mirror.example.com"

    def test_empty_env_uses_default(self):
        assert RegistryConfig.from_env({}).registry_url == Constants.REGISTRY_URL_NPM

    def test_timeout_zero_disables(self):
        assert RegistryConfig.from_env({"NPM_RESOLVER_TIMEOUT": "0"}).timeout is None

    def test_invalid_timeout(self):
        with pytest.raises(ConfigError):
            RegistryConfig.from_env({"NPM_RESOLVER_TIMEOUT": "soon"})

    def test_negative_timeout_rejected(self):
        """Only 0 disables the timeout; negative values are mistakes."""
        with pytest.raises(ConfigError):
            RegistryConfig.from_env({"NPM_RESOLVER_TIMEOUT": "-5"})


class TestRegistryConfigFromFile:
    """Tests for YAML configuration files."""

    def test_registry_section(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "registry:\n"
            "  registry_url: https://mirror.example.com\n"
            "  positive_ttl: 10\n"
            "  exclude_keys: [scripts]\n",
            encoding="utf-8",
        )

        config = RegistryConfig.from_file(str(path))

        assert config.registry_url == "https://mirror.example.com"
        assert config.positive_ttl == 10
        assert config.exclude_keys == ("scripts",)

    def test_top_level_settings(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("negative_ttl: 30\n", encoding="utf-8")

        assert RegistryConfig.from_file(str(path)).negative_ttl == 30

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("registry:\n  registy_url: typo\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="registy_url"):
            RegistryConfig.from_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            RegistryConfig.from_file(str(tmp_path / "absent.yml"))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("registry: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            RegistryConfig.from_file(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            RegistryConfig.from_file(str(path))


class TestRegistryConfigFromArgs:
    def test_cli_overrides_base(self):
        base = RegistryConfig(registry_url="https://file.example.com", positive_ttl=10)
        args = argparse.Namespace(REGISTRY="https://cli.example.com", TIMEOUT=5.0)

        config = RegistryConfig.from_args(args, base=base)

        assert config.registry_url == "https://cli.example.com"
        assert config.timeout == 5.0
        assert config.positive_ttl == 10

    def test_no_overrides_returns_base(self):
        base = RegistryConfig()
        args = argparse.Namespace(REGISTRY=None, TIMEOUT=None)

        assert RegistryConfig.from_args(args, base=base) is base

    def test_defaults_to_environment(self, monkeypatch):
        monkeypatch.setenv("NPM_REGISTRY_URL", "https://env.example.com")
        args = argparse.Namespace(REGISTRY=None, TIMEOUT=None)

        assert RegistryConfig.from_args(args).registry_url == "https://env.example.com"

    def test_negative_cli_timeout_rejected(self):
        args = argparse.Namespace(REGISTRY=None, TIMEOUT=-1.0)

        with pytest.raises(ConfigError):
            RegistryConfig.from_args(args, base=RegistryConfig())

    def test_cli_timeout_zero_disables(self):
        args = argparse.Namespace(REGISTRY=None, TIMEOUT=0.0)

        assert RegistryConfig.from_args(args, base=RegistryConfig()).timeout is None
