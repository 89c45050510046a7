import importlib.util

import pytest

from photocap.storage.models import TenantClass
from conftest import ROOT


@pytest.fixture(scope="module")
def bootstrap_module():
    spec = importlib.util.spec_from_file_location(
        "bootstrap_admin", ROOT / "scripts" / "bootstrap_admin.py"
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_creates_admin(bootstrap_module, memory_store, passwords):
    result = bootstrap_module.bootstrap_admin(
        memory_store, passwords, "Owner@Studio.com", "Secret123", "Owner"
    )
    assert result["status"] == "created"
    admin = memory_store.get_identity_by_email(TenantClass.ADMIN, "owner@studio.com")
    assert admin.role == "SUPER_ADMIN"
    assert passwords.verify(
        memory_store.get_password_hash(TenantClass.ADMIN, admin.id), "Secret123"
    )


def test_existing_admin_is_left_alone(bootstrap_module, memory_store, passwords):
    first = bootstrap_module.bootstrap_admin(
        memory_store, passwords, "owner@studio.com", "Secret123", "Owner"
    )
    again = bootstrap_module.bootstrap_admin(
        memory_store, passwords, "owner@studio.com", "Other456", "Other"
    )
    assert again == {"admin_id": first["admin_id"], "email": "owner@studio.com", "status": "exists"}


def test_dry_run_writes_nothing(bootstrap_module, memory_store, passwords):
    result = bootstrap_module.bootstrap_admin(
        memory_store, passwords, "owner@studio.com", "Secret123", "Owner", dry_run=True
    )
    assert result["status"] == "dry_run"
    assert memory_store.get_identity_by_email(TenantClass.ADMIN, "owner@studio.com") is None


def test_seeded_admin_can_log_in(bootstrap_module, client, runtime, passwords):
    bootstrap_module.bootstrap_admin(
        runtime.store, passwords, "owner@studio.com", "Secret123", "Owner"
    )
    resp = client.post(
        "/api/admin/login", json={"email": "owner@studio.com", "password": "Secret123"}
    )
    assert resp.status_code == 200
