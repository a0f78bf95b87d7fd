"""
Shared fixtures.
Settings are cached per process, so auth mode is fixed before any app import.
"""
import os

os.environ.setdefault("AUTH_MODE", "dev")
os.environ.setdefault("DEV_BEARER_TOKEN", "dev-token")
os.environ.setdefault("SERVICE_ENV", "dev")

import pytest

from patchguard.core.metrics import get_metrics_collector
from patchguard.services.profile_store import ProfileStore


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Fresh metrics and profile store for every test."""
    get_metrics_collector().reset()
    ProfileStore.reset_instance()
    yield
    ProfileStore.reset_instance()


@pytest.fixture
def store() -> ProfileStore:
    """Shared store with one workspace, two admins and two customers."""
    store = ProfileStore.get_instance()
    store.add_workspace("ws_1", "Workspace one")
    store.add_workspace("ws_2", "Workspace two")
    store.add_user({
        "id": "admin_1",
        "workspaceId": "ws_1",
        "role": "ADMIN",
        "email": "admin@example.com",
        "fullName": "Ada Admin",
        "passwordHash": "hash-admin",
    })
    store.add_user({
        "id": "client_1",
        "workspaceId": "ws_1",
        "role": "CLIENT",
        "email": "client@example.com",
        "fullName": "Cal Client",
        "phone": "111",
        "passwordHash": "hash-client",
    })
    store.add_user({
        "id": "client_2",
        "workspaceId": "ws_2",
        "role": "CLIENT",
        "email": "other@example.com",
        "fullName": "Olive Other",
    })
    store.add_user({
        "id": "admin_2",
        "workspaceId": "ws_2",
        "role": "BUSINESS",
        "email": "biz@example.com",
        "fullName": "Bo Business",
    })
    return store
