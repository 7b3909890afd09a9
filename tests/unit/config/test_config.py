"""Tests for Config Pydantic Settings."""

from pathlib import Path

import pytest

from vidacure.config import BrokerConfig, Config


class TestBrokerConfig:
    """Tests for BrokerConfig derived properties."""

    def test_base_url_defaults_to_https(self) -> None:
        assert BrokerConfig(domain="vidacure.criipto.id").base_url == "https://vidacure.criipto.id"

    def test_base_url_keeps_explicit_scheme(self) -> None:
        config = BrokerConfig(domain="http://localhost:9000/")
        assert config.base_url == "http://localhost:9000"

    def test_native_client_falls_back_to_web_client(self) -> None:
        assert BrokerConfig(client_id="web").native_client_id == "web"
        assert BrokerConfig(client_id="web", app_client_id="app").native_client_id == "app"

    def test_is_configured_needs_domain_client_and_secret(self) -> None:
        assert not BrokerConfig(domain="d", client_id="c").is_configured
        assert BrokerConfig(domain="d", client_id="c", client_secret="s").is_configured


class TestConfigSources:
    """Tests for environment and YAML configuration sources."""

    def test_nested_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested sections use the __ delimiter under the VIDACURE_ prefix."""
        monkeypatch.setenv("VIDACURE_BROKER__DOMAIN", "vidacure.criipto.id")
        monkeypatch.setenv("VIDACURE_AUTH__SESSION__TTL_MINUTES", "15")
        monkeypatch.setenv("VIDACURE_AUTH__COOKIES__SECURE", "true")

        config = Config()

        assert config.broker.domain == "vidacure.criipto.id"
        assert config.auth.session.ttl_minutes == 15
        assert config.auth.cookies.secure is True

    def test_session_defaults(self) -> None:
        config = Config()

        assert config.auth.session.algorithm == "HS256"
        assert config.auth.session.ttl_minutes == 30
        assert config.auth.cookies.samesite == "lax"

    def test_yaml_file_is_lowest_priority(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        config_file = tmp_path / "vidacure.yaml"
        config_file.write_text(
            "frontend:\n  url: https://app.vidacure.se\n"
            "broker:\n  domain: from-yaml.criipto.id\n"
        )
        monkeypatch.setenv("VIDACURE_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("VIDACURE_BROKER__DOMAIN", "from-env.criipto.id")

        config = Config()

        assert config.frontend.url == "https://app.vidacure.se"
        assert config.broker.domain == "from-env.criipto.id"

    def test_missing_yaml_file_is_ignored(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv("VIDACURE_CONFIG_FILE", str(tmp_path / "absent.yaml"))

        assert Config().frontend.url == "http://localhost:5173"

    def test_config_is_frozen(self) -> None:
        config = Config()

        with pytest.raises(ValueError):
            config.frontend = config.frontend
