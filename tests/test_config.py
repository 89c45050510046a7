import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from photocap.app import create_app
from photocap.config import AppEnv, Settings, get_settings
from photocap.service.errors import ConfigurationError
from photocap.service.runtime import _mask_url_password
from photocap.storage.memory import MemoryStore


def test_from_env_reads_declared_names(monkeypatch):
    monkeypatch.setenv("APP_ENV", "Production")
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("ADMIN_TOKEN_TTL_HOURS", "12")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example,")
    settings = Settings.from_env()
    assert settings.app_env == AppEnv.PRODUCTION
    assert settings.jwt_secret == "from-env"
    assert settings.admin_token_ttl == timedelta(hours=12)
    assert settings.allowed_origins() == ["https://a.example", "https://b.example"]


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("JWT_SECRET", "changed")
    assert get_settings() is first


def test_token_lifetimes_default():
    settings = Settings(jwt_secret="x")
    assert settings.admin_token_ttl == timedelta(hours=24)
    assert settings.studio_token_ttl == timedelta(days=7)
    assert settings.token_clock_skew_seconds == 0


def test_default_origins_are_the_two_frontends():
    assert Settings().allowed_origins() == ["http://localhost:3001", "http://localhost:3000"]


@pytest.mark.parametrize("secret", [None, "", "   "])
def test_missing_secret_fails_fast(secret):
    settings = Settings(jwt_secret=secret, use_memory_store=True)
    assert settings.jwt_secret is None
    with pytest.raises(ConfigurationError):
        settings.require_jwt_secret()
    with pytest.raises(ConfigurationError):
        create_app(settings, store=MemoryStore())


@pytest.mark.parametrize(
    "env,secure",
    [("development", False), ("production", True), ("test", True), ("DEVELOPMENT", False)],
)
def test_cookie_secure_by_environment(env, secure):
    assert Settings(app_env=env).cookie_secure is secure


def test_production_cookie_carries_secure_flag():
    settings = Settings(
        app_env="production",
        jwt_secret="prod-secret",
        password_hash_time_cost=1,
        password_hash_memory_cost=8192,
        password_hash_parallelism=1,
    )
    app = create_app(settings, store=MemoryStore())
    runtime = app.state.runtime
    asyncio.run(runtime.admin_auth.register("p@test.com", "Secret123", name="Prod"))
    resp = TestClient(app).post(
        "/api/admin/login", json={"email": "p@test.com", "password": "Secret123"}
    )
    assert resp.status_code == 200
    assert "Secure" in resp.headers["set-cookie"]


def test_mask_url_password():
    assert (
        _mask_url_password("postgresql://app:hunter2@db:5432/photocap")
        == "postgresql://app:***@db:5432/photocap"
    )
    assert _mask_url_password("postgresql://db/photocap") == "postgresql://db/photocap"
    assert _mask_url_password(None) is None


def test_password_hash_defaults_and_overrides(monkeypatch):
    settings = Settings()
    assert (
        settings.password_hash_time_cost,
        settings.password_hash_memory_cost,
        settings.password_hash_parallelism,
    ) == (3, 65536, 4)
    monkeypatch.setenv("PASSWORD_HASH_TIME_COST", "4")
    assert Settings.from_env().password_hash_time_cost == 4
