import importlib
import os
from contextlib import nullcontext
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config

from tests.db_utils import postgres_test_database
from tests.inventory_helpers import create_tenant, create_user


def _setup_app(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    os.environ["SECRET_KEY"] = "test-secret"

    import app.invtrack.core.config as config
    import app.invtrack.db.session as session
    import app.main as main

    importlib.reload(config)
    importlib.reload(session)
    importlib.reload(main)

    return main.create_app(), session


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


@pytest.fixture(scope="session")
def base_database_url():
    return os.getenv("INVTRACK_TEST_DATABASE_URL") or os.getenv("DATABASE_URL", "")


@pytest.fixture()
def client(tmp_path: Path, base_database_url: str):
    if base_database_url.startswith("postgres"):
        database = postgres_test_database(base_database_url)
    else:
        database = nullcontext(f"sqlite+pysqlite:///{tmp_path / 'test.db'}")

    with database as database_url:
        _run_migrations(database_url)
        app, session = _setup_app(database_url)
        with TestClient(app) as client:
            yield client
        session.engine.dispose()


@pytest.fixture()
def db_session(client):
    from app.invtrack.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def people(db_session):
    """Two tenants with an owner and employees each, plus a super-admin."""
    tenant = create_tenant(db_session, "Agency A")
    other_tenant = create_tenant(db_session, "Agency B")
    return SimpleNamespace(
        tenant=tenant,
        other_tenant=other_tenant,
        owner=create_user(db_session, tenant, role="OWNER", username="owner-a"),
        employee=create_user(db_session, tenant, role="EMPLOYEE", username="employee-a1"),
        second_employee=create_user(db_session, tenant, role="EMPLOYEE", username="employee-a2"),
        inactive_employee=create_user(
            db_session, tenant, role="EMPLOYEE", username="employee-a3", is_active=False
        ),
        other_owner=create_user(db_session, other_tenant, role="OWNER", username="owner-b"),
        other_employee=create_user(db_session, other_tenant, role="EMPLOYEE", username="employee-b1"),
        superadmin=create_user(db_session, None, role="SUPERADMIN", username="root"),
    )
