"""
Configuration Tests
"""

import json
from logging.handlers import RotatingFileHandler

import pytest

from signalform.app import config as config_module
from signalform.app.config import Environment, FormConfig, LoggingConfig, configure_logging


def test_defaults():
    config = FormConfig()
    assert config.validation.min_username_length == 3
    assert config.validation.min_password_length == 8
    assert config.validation.special_characters == "!#$%&*"
    assert config.validation.debounce_seconds == 0.4
    assert config.availability.url == "http://127.0.0.1:8080/isUserNameAvailable"
    assert config.messages.username_available == ""


@pytest.mark.parametrize("environment, level", [
    (Environment.DEVELOPMENT, "DEBUG"),
    (Environment.TESTING, "WARNING"),
    (Environment.PRODUCTION, "INFO"),
])
def test_for_environment(environment, level):
    config = FormConfig.for_environment(environment)
    assert config.environment is environment
    assert config.logging.level == level


def test_from_dict_overrides_sections_and_ignores_unknown_keys():
    config = FormConfig.from_dict({
        "environment": "testing",
        "validation": {"debounce_seconds": 0.25, "bogus": 1},
        "messages": {"password_mismatch": "Nope"},
    })
    assert config.environment is Environment.TESTING
    assert config.validation.debounce_seconds == 0.25
    assert config.messages.password_mismatch == "Nope"
    assert not hasattr(config.validation, "bogus")


def test_to_dict_round_trip():
    config = FormConfig.for_environment(Environment.PRODUCTION)
    data = config.to_dict()
    assert data["environment"] == "production"
    assert FormConfig.from_dict(data) == config


def test_from_file(tmp_path):
    path = tmp_path / "signalform.json"
    path.write_text(json.dumps({"availability": {"base_url": "http://users:9000"}}))

    config = FormConfig.from_file(path)
    assert config.availability.url == "http://users:9000/isUserNameAvailable"


def test_from_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        FormConfig.from_file(tmp_path / "missing.json")

    yaml_path = tmp_path / "signalform.yaml"
    yaml_path.write_text("environment: testing")
    with pytest.raises(ValueError):
        FormConfig.from_file(yaml_path)


def test_from_environment(monkeypatch):
    monkeypatch.setenv("SIGNALFORM_ENV", "production")
    monkeypatch.setenv("SIGNALFORM_DEBOUNCE_SECONDS", "0.75")
    monkeypatch.setenv("SIGNALFORM_AVAILABILITY_URL", "http://users.internal")
    monkeypatch.setenv("SIGNALFORM_TIMEOUT_SECONDS", "2")
    monkeypatch.setenv("SIGNALFORM_LOG_LEVEL", "debug")

    config = FormConfig.from_environment()
    assert config.environment is Environment.PRODUCTION
    assert config.validation.debounce_seconds == 0.75
    assert config.availability.base_url == "http://users.internal"
    assert config.availability.timeout_seconds == 2.0
    assert config.logging.level == "DEBUG"


def test_get_and_set_config(monkeypatch):
    monkeypatch.setattr(config_module, "_current_config", None)
    monkeypatch.setenv("SIGNALFORM_ENV", "testing")

    assert config_module.get_config().environment is Environment.TESTING

    custom = FormConfig.for_environment(Environment.PRODUCTION)
    config_module.set_config(custom)
    assert config_module.get_config() is custom


def test_configure_logging_with_rotating_file(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(config_module.logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging(LoggingConfig(level="DEBUG", file_path=str(tmp_path / "signalform.log")))

    kwargs = calls[0]
    assert kwargs["level"] == "DEBUG"
    assert kwargs["force"] is True
    assert isinstance(kwargs["handlers"][1], RotatingFileHandler)
    assert kwargs["handlers"][1].backupCount == 5
    for handler in kwargs["handlers"]:
        handler.close()
