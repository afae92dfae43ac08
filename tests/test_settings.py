import pytest
from pydantic import ValidationError

from spotshare.config.settings import BackendSettings, Settings, VisibilitySettings, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_packaged_defaults(monkeypatch):
    for var in ("SPOTSHARE_CONFIG_PATH", "SPOTSHARE_BACKEND", "SUPABASE_URL", "SUPABASE_ANON_KEY", "SPOTSHARE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)

    settings = get_settings()
    assert settings.backend.kind == "memory"
    assert settings.visibility.delay_window_ms == 60_000
    assert settings.visibility.default_distance_km == 1.0
    assert settings.geolocation.timeout_seconds == 10.0
    assert settings.feed.dedupe_by_id is False
    assert settings.backend.tables.locations == "locations"


def test_env_overrides(monkeypatch):
    monkeypatch.delenv("SPOTSHARE_CONFIG_PATH", raising=False)
    monkeypatch.setenv("SPOTSHARE_LOG_LEVEL", "debug")
    monkeypatch.setenv("SPOTSHARE_BACKEND", "supabase")
    monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

    settings = get_settings()
    assert settings.app.log_level == "debug"
    assert settings.backend.kind == "supabase"
    assert settings.backend.url == "https://demo.supabase.co"


def test_external_config_file(monkeypatch, tmp_path):
    path = tmp_path / "spotshare.yaml"
    path.write_text("visibility:\n  delay_window_ms: 1000\nfeed:\n  dedupe_by_id: true\n", encoding="utf-8")
    monkeypatch.setenv("SPOTSHARE_CONFIG_PATH", str(path))
    monkeypatch.delenv("SPOTSHARE_BACKEND", raising=False)

    settings = get_settings()
    assert settings.visibility.delay_window_ms == 1000
    assert settings.feed.dedupe_by_id is True


def test_supabase_requires_credentials():
    with pytest.raises(ValidationError, match="requires backend.url"):
        BackendSettings(kind="supabase")


def test_visibility_range_validation():
    with pytest.raises(ValidationError):
        VisibilitySettings(min_distance_km=5, max_distance_km=1, default_distance_km=2)
    with pytest.raises(ValidationError):
        VisibilitySettings(default_distance_km=100)
    assert Settings().visibility.max_distance_km == 50
