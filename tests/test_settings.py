"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from parkcam.config import Settings, load_settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test away from any .env file and PARKCAM_ variables."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("PARKCAM_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults_match_deployment(self):
        settings = Settings()

        assert settings.bucket_name == "pipark2014"
        assert settings.server_host == "www.pipark2014.appspot.com"
        assert settings.location_name == "300ThirdStreet"
        assert settings.poll_interval == 10.0
        assert settings.capture_path == Path("test.jpg")
        assert settings.cache_file == Path("cache.json")
        assert settings.test_mode is False
        assert settings.strict_poll_responses is True

    def test_derived_values(self):
        settings = Settings()

        assert settings.server_base_url == "http://www.pipark2014.appspot.com"
        assert settings.object_path == "parkingspots/imgs/300ThirdStreet/"
        assert settings.capture_args == ["raspistill", "-o", "test.jpg", "-w", "640", "-h", "480"]


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PARKCAM_POLL_INTERVAL", "30")
        monkeypatch.setenv("PARKCAM_LOCATION_NAME", "5thAve")

        settings = Settings()

        assert settings.poll_interval == 30.0
        assert settings.object_path == "parkingspots/imgs/5thAve/"

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("PARKCAM_BUCKET_NAME=from-dotenv\n")

        assert Settings().bucket_name == "from-dotenv"


class TestValidation:
    @pytest.mark.parametrize("value", [0, -5])
    def test_poll_interval_must_be_positive(self, value):
        with pytest.raises(ValidationError):
            Settings(poll_interval=value)

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_invalid_scheme(self):
        with pytest.raises(ValidationError):
            Settings(server_scheme="ftp")

    def test_settings_are_immutable(self):
        settings = Settings()

        with pytest.raises(ValidationError):
            settings.bucket_name = "other"


class TestLoadSettings:
    def test_none_overrides_fall_through_to_env(self, monkeypatch):
        monkeypatch.setenv("PARKCAM_POLL_INTERVAL", "42")

        settings = load_settings(poll_interval=None, test_mode=None)

        assert settings.poll_interval == 42.0
        assert settings.test_mode is False

    def test_overrides_win_over_env(self, monkeypatch):
        monkeypatch.setenv("PARKCAM_POLL_INTERVAL", "42")

        settings = load_settings(poll_interval=5.0, cache_file=Path("tok.json"))

        assert settings.poll_interval == 5.0
        assert settings.cache_file == Path("tok.json")
