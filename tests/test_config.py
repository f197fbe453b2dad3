import pytest

from frontend.config import Settings


def test_defaults_when_environment_is_empty():
    settings = Settings.from_env({})

    assert settings.env == "production"
    assert settings.host == "0.0.0.0"
    assert settings.port == 8080
    assert settings.bind == "0.0.0.0:8080"
    assert settings.debug is False


def test_reads_mode_port_and_address():
    settings = Settings.from_env(
        {"APP_ENV": "Development", "PORT": "3000", "HOST": "127.0.0.1", "LOG_LEVEL": "debug"}
    )

    assert settings.env == "development"
    assert settings.debug is True
    assert settings.bind == "127.0.0.1:3000"
    assert settings.log_level == "DEBUG"


def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("APP_NAME", "shop")

    settings = Settings.from_env()

    assert settings.port == 9090
    assert settings.app_name == "shop"


@pytest.mark.parametrize("environ", [
    {"APP_ENV": "staging"},
    {"PORT": "http"},
    {"PORT": "0"},
    {"PORT": "70000"},
    {"LOG_LEVEL": "verbose"},
])
def test_rejects_invalid_values(environ):
    with pytest.raises(ValueError):
        Settings.from_env(environ)


def test_log_level_names_are_normalized():
    assert Settings.from_env({"LOG_LEVEL": " warning "}).log_level == "WARNING"
