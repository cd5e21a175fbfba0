"""Unit tests for haste.engine.config — haste.yaml loading and validation."""

import pytest
from pydantic import ValidationError

from haste.documents.keys import LOWERCASE, UPPERCASE
from haste.engine.config import (
    HasteConfig,
    KeyConfig,
    LoggingConfig,
    find_config_file,
    load_config,
)
from haste.engine.errors import HasteConfigError


class TestDefaults:

    def test_defaults(self):
        config = HasteConfig()
        assert config.server.host == "localhost"
        assert config.server.port == 7777
        assert config.redis.url == "redis://localhost:6379/0"
        assert config.keys.length == 10
        assert config.keys.alphabets == [UPPERCASE, LOWERCASE, LOWERCASE]
        assert config.keys.check_collisions is False
        assert config.storage.max_length is None
        assert config.storage.recent_limit == 20
        assert config.documents == {}

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"), environ={})
        assert config == HasteConfig()


class TestLoadConfig:

    def test_full_file(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text(
            "haste:\n"
            "  name: Pastes\n"
            "  environment: prod\n"
            "server:\n"
            "  host: 0.0.0.0\n"
            "  port: 8080\n"
            "redis:\n"
            "  url: redis://cache:6379/1\n"
            "keys:\n"
            "  length: 8\n"
            "  check_collisions: true\n"
            "storage:\n"
            "  max_length: 400000\n"
            "logging:\n"
            "  level: debug\n"
            "documents:\n"
            "  about: ./about.md\n",
            encoding="utf-8",
        )
        config = load_config(str(path), environ={})
        assert config.name == "Pastes"
        assert config.environment == "prod"
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.redis.url == "redis://cache:6379/1"
        assert config.keys.length == 8
        assert config.keys.check_collisions is True
        assert config.storage.max_length == 400_000
        assert config.logging.level == "DEBUG"
        assert config.documents == {"about": "./about.md"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path), environ={}) == HasteConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text("server: [unclosed", encoding="utf-8")
        with pytest.raises(HasteConfigError, match="parse"):
            load_config(str(path), environ={})

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(HasteConfigError, match="mapping"):
            load_config(str(path), environ={})

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text("server:\n  port: 0\n", encoding="utf-8")
        with pytest.raises(HasteConfigError) as exc_info:
            load_config(str(path), environ={})
        assert exc_info.value.context["validation_errors"]

    def test_delimiter_in_alphabet(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text("keys:\n  alphabets: ['ab.c']\n", encoding="utf-8")
        with pytest.raises(HasteConfigError):
            load_config(str(path), environ={})


class TestEnvironmentOverrides:

    def test_overrides_file_values(self, tmp_path):
        path = tmp_path / "haste.yaml"
        path.write_text("server:\n  host: filehost\n  port: 1234\n", encoding="utf-8")
        config = load_config(
            str(path),
            environ={"HOST": "envhost", "PORT": "9999", "REDIS_URL": "redis://env:6379/3"},
        )
        assert config.server.host == "envhost"
        assert config.server.port == 9999
        assert config.redis.url == "redis://env:6379/3"

    def test_empty_values_ignored(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"), environ={"PORT": ""})
        assert config.server.port == 7777

    def test_bad_port(self, tmp_path):
        with pytest.raises(HasteConfigError):
            load_config(str(tmp_path / "absent.yaml"), environ={"PORT": "not-a-port"})


class TestFindConfigFile:

    def test_walks_up(self, tmp_path):
        (tmp_path / "haste.yaml").write_text("{}", encoding="utf-8")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == tmp_path / "haste.yaml"

    def test_auto_discovery(self, tmp_path, monkeypatch):
        (tmp_path / "haste.yaml").write_text("server:\n  port: 4242\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config(environ={}).server.port == 4242


class TestModelValidation:

    @pytest.mark.parametrize("alphabets", [[], [""], ["abc", ""], ["a.b"]])
    def test_key_alphabets(self, alphabets):
        with pytest.raises(ValidationError):
            KeyConfig(alphabets=alphabets)

    def test_log_level(self):
        assert LoggingConfig(level="warning").level == "WARNING"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    def test_environment(self):
        with pytest.raises(ValidationError):
            HasteConfig(environment="qa")
