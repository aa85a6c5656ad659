import os

os.environ.setdefault("STORE_BACKEND", "memory")

import pytest
from fastapi import Header
from fastapi.testclient import TestClient

from socialgraph.core.authorization import AuthorizationEvaluator
from socialgraph.core.locks import KeyedLock
from socialgraph.database.memory_store import MemoryEntityStore
from socialgraph.modules.collectives.service import MembershipManager
from socialgraph.modules.notifications.service import NotificationDispatcher
from socialgraph.modules.workflows.service import WorkflowStateMachine


@pytest.fixture()
def store():
    return MemoryEntityStore()


@pytest.fixture()
def locks():
    return KeyedLock()


@pytest.fixture()
def evaluator(store):
    return AuthorizationEvaluator(store)


@pytest.fixture()
def notifier(store):
    return NotificationDispatcher(store)


@pytest.fixture()
def manager(store, evaluator, notifier, locks):
    return MembershipManager(store, evaluator=evaluator, notifier=notifier, locks=locks)


@pytest.fixture()
def workflows(store, evaluator, notifier, locks):
    return WorkflowStateMachine(store, evaluator=evaluator, notifier=notifier, locks=locks)


def _header_user(x_user: str = Header(...)) -> dict:
    return {"id": x_user, "email": f"{x_user}@example.com", "user_metadata": {}}


@pytest.fixture()
def client(store):
    from socialgraph.main import app
    from socialgraph.core.dependencies import get_current_user
    from socialgraph.database.supabase_client import get_store

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = _header_user
    yield TestClient(app)
    app.dependency_overrides.clear()


def as_user(user_id: str) -> dict:
    return {"X-User": user_id}
