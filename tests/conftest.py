import os

# Avant l'import de l'app: pas de Redis ni de clés réelles en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("ALLOWED_HOSTS", "testserver,localhost,127.0.0.1")

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from eventreg.app_setup.factory import create_app
from tests.fakes import FakeLedger

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return create_app()

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

# Aucun test ne doit toucher une vraie base Supabase
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("eventreg.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("eventreg.infra.supabase_client.get_service_supabase", lambda: MagicMock())

@pytest.fixture()
def ledger(monkeypatch) -> FakeLedger:
    """Ledger en mémoire branché sur tous les repositories, Stripe et Resend."""
    return FakeLedger().install(monkeypatch)

@pytest.fixture()
def admin_actor(ledger):
    ledger.grant_role("admin-1", "admin")
    return {"id": "admin-1", "email": "admin@x.com"}
