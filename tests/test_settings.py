import pytest

from core.settings import Settings, load_settings


@pytest.fixture()
def clean_env(monkeypatch):
    for name in (
        "DATABASE_URL",
        "API_KEYS",
        "RECORDS_PAGE_MAX",
        "MATCH_TOLERANCE",
        "MATCH_FAN_OUT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()
    assert settings.api_keys == frozenset({"demo-key"})
    assert settings.records_page_max == 1000
    assert settings.match_tolerance == 0.1
    assert settings.match_fan_out is False
    with pytest.raises(RuntimeError):
        settings.require_database_url()


def test_environment_overrides(clean_env):
    clean_env.setenv("DATABASE_URL", "postgresql://u:p@db:5432/app?sslmode=require&application_name=records")
    clean_env.setenv("API_KEYS", " a , b ,, ")
    clean_env.setenv("RECORDS_PAGE_MAX", "not-a-number")
    clean_env.setenv("MATCH_FAN_OUT", "true")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.database_url == "postgresql://u:p@db:5432/app?application_name=records"
    assert settings.api_keys == frozenset({"a", "b"})
    assert settings.records_page_max == Settings().records_page_max
    assert settings.match_fan_out is True
    assert settings.log_level == "DEBUG"
