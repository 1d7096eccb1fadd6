from config import DEFAULT_DATABASE_URL, load_config


def test_defaults(monkeypatch) -> None:
    for name in ("DATABASE_URL", "TRENDS_TIMEZONE", "ALLOW_INIT_DB", "FRONTEND_ORIGIN", "PORT"):
        monkeypatch.delenv(name, raising=False)

    config = load_config()

    assert config.database_url == DEFAULT_DATABASE_URL
    assert config.timezone == "UTC"
    assert config.allow_init_db is False
    assert config.frontend_origin is None
    assert config.port == 5000


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("TRENDS_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("ALLOW_INIT_DB", "1")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config()

    assert config.timezone == "Europe/Berlin"
    assert str(config.zone) == "Europe/Berlin"
    assert config.allow_init_db is True
    assert config.log_level == "DEBUG"


def test_unknown_timezone_falls_back_to_utc(monkeypatch) -> None:
    monkeypatch.setenv("TRENDS_TIMEZONE", "Nowhere/Special")

    assert load_config().timezone == "UTC"
    assert load_config({"timezone": "Also/Nowhere"}).timezone == "UTC"


def test_overrides_win(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://example/db")

    config = load_config({"database_url": "sqlite://", "allow_init_db": True})

    assert config.database_url == "sqlite://"
    assert config.allow_init_db is True
