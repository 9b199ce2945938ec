import logging
import os

import pytest

from config.log_config import NOISY_LOGGERS, SUCCESS_LEVEL, build_logging_config, setup_logging
from config.settings import DEFAULT_AUTO_DETECT_DELAY, DEFAULT_REQUEST_TIMEOUT, load_settings

ENV_VARS = (
    "TMDB_API_KEY",
    "GOOGLE_VISION_API_KEY",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "TMDB_LANGUAGE",
    "SCAN_REQUEST_TIMEOUT",
    "SCAN_AUTO_DETECT",
    "SCAN_AUTO_DETECT_DELAY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    # le chargeur .env écrit directement dans os.environ
    for name in ENV_VARS:
        os.environ.pop(name, None)


def test_load_settings_from_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# commentaire\n"
        "TMDB_API_KEY=\"tmdb-123\"\n"
        "GOOGLE_VISION_API_KEY='vision-456'\n"
        "SCAN_AUTO_DETECT=non\n"
        "SCAN_AUTO_DETECT_DELAY=0\n"
        "TMDB_LANGUAGE=fr-FR\n",
        encoding="utf-8",
    )

    settings = load_settings(env_file)

    assert settings.tmdb_api_key == "tmdb-123"
    assert settings.vision_api_key == "vision-456"
    assert settings.auto_detect is False
    assert settings.auto_detect_delay == 0
    assert settings.tmdb_language == "fr-FR"
    assert settings.request_timeout == DEFAULT_REQUEST_TIMEOUT


def test_environment_wins_over_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("TMDB_API_KEY=from-file\nGOOGLE_VISION_API_KEY=v\n", encoding="utf-8")
    monkeypatch.setenv("TMDB_API_KEY", "from-env")

    assert load_settings(env_file).tmdb_api_key == "from-env"


def test_missing_tmdb_key_is_fatal(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "vision")
    with pytest.raises(RuntimeError):
        load_settings(tmp_path / "absent.env")


def test_placeholder_keys_count_as_missing(tmp_path, monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "tmdb")
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "your_google_vision_api_key")
    with pytest.raises(RuntimeError):
        load_settings(tmp_path / "absent.env")


def test_service_account_is_enough_for_ocr(tmp_path, monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "tmdb")
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", "/secrets/sa.json")

    settings = load_settings(tmp_path / "absent.env")

    assert settings.vision_api_key is None
    assert settings.google_credentials == "/secrets/sa.json"


def test_invalid_numbers_fall_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "tmdb")
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "vision")
    monkeypatch.setenv("SCAN_REQUEST_TIMEOUT", "abc")
    monkeypatch.setenv("SCAN_AUTO_DETECT_DELAY", "-2")
    monkeypatch.setenv("SCAN_AUTO_DETECT", "peut-etre")

    settings = load_settings(tmp_path / "absent.env")

    assert settings.request_timeout == DEFAULT_REQUEST_TIMEOUT
    assert settings.auto_detect_delay == DEFAULT_AUTO_DETECT_DELAY
    assert settings.auto_detect is True


def test_logging_config_with_file(tmp_path):
    config = build_logging_config(logging.INFO, tmp_path / "scan.log")

    assert config["root"]["level"] == "INFO"
    assert config["root"]["handlers"] == ["console", "file"]
    assert config["handlers"]["file"]["class"] == "logging.handlers.RotatingFileHandler"
    for name in NOISY_LOGGERS:
        assert config["loggers"][name]["level"] == "WARNING"


def test_logging_config_is_not_shared():
    build_logging_config(logging.INFO, None)
    assert build_logging_config(logging.DEBUG, None)["root"]["handlers"] == ["console"]


def test_setup_logging_registers_success_level(tmp_path):
    log_file = tmp_path / "logs" / "scan.log"
    setup_logging(logging.DEBUG, log_file)

    assert logging.getLevelName(SUCCESS_LEVEL) == "SUCCESS"
    assert hasattr(logging.getLogger("scan"), "success")
    assert log_file.parent.exists()
