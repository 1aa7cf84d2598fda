import pytest

from form_filler.config import Settings


ENV_VARS = [
    "OPENAI_API_KEY", "SESSION_SECRET", "PORT", "HOST", "NODE_ENV", "APP_ENV",
    "COMPLETION_PROVIDER", "OPENAI_MODEL", "OPENAI_BASE_URL", "OLLAMA_HOST",
    "OLLAMA_MODEL", "COMPLETION_TIMEOUT", "CORS_ORIGINS", "LOG_LEVEL", "FILTER_UNKNOWN_FIELDS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings.from_env(load_env_file=False)
    assert settings.port == 3000
    assert settings.session_secret == "your-secret-key"
    assert settings.production is False
    assert settings.provider == "openai"
    assert settings.has_api_key is False
    assert settings.timeout == 60
    assert settings.cors_origins == ["*"]
    assert settings.filter_unknown_fields is True


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-abc")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("NODE_ENV", "production")
    monkeypatch.setenv("COMPLETION_PROVIDER", "Ollama")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://proxy.local/v1/")
    monkeypatch.setenv("COMPLETION_TIMEOUT", "12.5")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("FILTER_UNKNOWN_FIELDS", "off")

    settings = Settings.from_env(load_env_file=False)

    assert settings.has_api_key
    assert settings.port == 8080
    assert settings.production is True
    assert settings.provider == "ollama"
    assert settings.openai_base_url == "http://proxy.local/v1"
    assert settings.timeout == 12.5
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.filter_unknown_fields is False


def test_invalid_port_fails_fast(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")
    with pytest.raises(ValueError):
        Settings.from_env(load_env_file=False)


def test_settings_are_immutable():
    settings = Settings()
    with pytest.raises(Exception):
        settings.port = 1
