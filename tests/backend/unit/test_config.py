from roomhub.backend.config import load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("ROOMHUB_SERVER_SALT", "salt-1")
    monkeypatch.setenv("ROOMHUB_TOKEN_SECRET", "secret-1")
    monkeypatch.setenv("ROOMHUB_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("ROOMHUB_HOST", "localhost")
    monkeypatch.setenv("ROOMHUB_PORT", "9000")
    monkeypatch.setenv("ROOMHUB_STORE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("ROOMHUB_HOST_GRACE_SECONDS", "0")
    monkeypatch.setenv("ROOMHUB_MAX_PLAYERS_LIMIT", "8")
    monkeypatch.setenv("ROOMHUB_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ROOMHUB_LOG_FILE", "/tmp/roomhub.log")

    settings = load_settings()

    assert settings.server_salt == "salt-1"
    assert settings.token_secret == "secret-1"
    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.store_timeout_seconds == 2.5
    assert settings.host_grace_seconds == 0.0
    assert settings.max_players_limit == 8
    assert settings.log_level == "DEBUG"
    assert settings.log_file == "/tmp/roomhub.log"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "ROOMHUB_SERVER_SALT",
        "ROOMHUB_TOKEN_SECRET",
        "ROOMHUB_DATABASE_URL",
        "ROOMHUB_HOST",
        "ROOMHUB_PORT",
        "ROOMHUB_STORE_TIMEOUT_SECONDS",
        "ROOMHUB_HOST_GRACE_SECONDS",
        "ROOMHUB_MAX_PLAYERS_LIMIT",
        "ROOMHUB_LOG_LEVEL",
        "ROOMHUB_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.server_salt == "dev-salt"
    assert settings.token_secret == "dev-secret"
    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.store_timeout_seconds == 5.0
    assert settings.host_grace_seconds == 30.0
    assert settings.max_players_limit == 50
    assert settings.log_level == "INFO"
    assert settings.log_file is None
