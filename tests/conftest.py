import asyncio
import inspect
import os
import sys
from pathlib import Path

# Set before any photocap import reads the environment
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("USE_MEMORY_STORE", "true")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
# Cheap hashing keeps the suite fast; production defaults are much higher
os.environ.setdefault("PASSWORD_HASH_TIME_COST", "1")
os.environ.setdefault("PASSWORD_HASH_MEMORY_COST", "8192")
os.environ.setdefault("PASSWORD_HASH_PARALLELISM", "1")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from photocap.app import create_app  # noqa: E402
from photocap.config import Settings, reset_settings_cache  # noqa: E402
from photocap.service.passwords import PasswordManager  # noqa: E402
from photocap.storage.memory import MemoryStore  # noqa: E402

ADMIN_EMAIL = "admin@test.com"
ADMIN_PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def reset_settings_state():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings():
    """Explicit test settings, independent of any local .env file."""
    return Settings(
        app_env="development",
        jwt_secret="Test-Secret-Key_for-Automation-Only-987654321!",
        use_memory_store=True,
        password_hash_time_cost=1,
        password_hash_memory_cost=8192,
        password_hash_parallelism=1,
    )


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def passwords(settings):
    return PasswordManager.from_settings(settings)


@pytest.fixture
def app(settings, memory_store):
    return create_app(settings, store=memory_store)


@pytest.fixture
def runtime(app):
    return app.state.runtime


@pytest.fixture
def client(app):
    """Create a test client for the API."""
    return TestClient(app)


@pytest.fixture
def seeded_admin(runtime):
    """An admin created directly through the service, as the bootstrap script would."""
    result = asyncio.run(
        runtime.admin_auth.register(ADMIN_EMAIL, ADMIN_PASSWORD, name="Test Admin")
    )
    return {"identity": result.identity, "email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}


@pytest.fixture
def admin_headers(client, seeded_admin):
    resp = client.post(
        "/api/admin/login",
        json={"email": seeded_admin["email"], "password": seeded_admin["password"]},
    )
    assert resp.status_code == 200, resp.text
    client.cookies.clear()
    return {"Authorization": f"Bearer {resp.json()['token']}"}


STUDIO_PASSWORD = "Photo1234"


def studio_registration(email="studio@test.com", **overrides):
    body = {
        "email": email,
        "password": STUDIO_PASSWORD,
        "firstName": "Ada",
        "lastName": "Lens",
        "phone": "+15551234567",
        "photographyType": "Wedding Photography",
        "eventTypes": ["Weddings", "Engagement Sessions"],
        "budget": "15000-30000",
        "subscribeNewsletter": True,
    }
    body.update(overrides)
    return body


@pytest.fixture
def studio_user(client):
    """Register a studio user; the client keeps the studio_token cookie."""
    resp = client.post("/api/studio/register", json=studio_registration())
    assert resp.status_code == 201, resp.text
    return {"token": resp.json()["token"], "profile": resp.json()["profile"]}


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")
