import os
import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError


def _config(database_url: str) -> Config:
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    return config


def test_migrations_apply(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    command.upgrade(_config(database_url), "head")

    inspector = inspect(create_engine(database_url, future=True))
    tables = set(inspector.get_table_names())
    assert {
        "tenants",
        "users",
        "item_types",
        "item_groupings",
        "items",
        "item_status_changes",
        "idempotency_records",
        "audit_events",
    } <= tables

    indexes = {index["name"] for index in inspector.get_indexes("items")}
    assert "ix_items_selection" in indexes
    assert "ix_items_current_holder_id" in indexes


def test_items_reject_inconsistent_state(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'shape.db'}"
    command.upgrade(_config(database_url), "head")
    engine = create_engine(database_url, future=True)

    insert = text(
        "INSERT INTO items (id, tenant_id, item_type_id, status, current_holder_id, sell_price, revision,"
        " created_by, created_at) VALUES (:id, :tenant, :type, :status, :holder, :price, 1, :by, '2026-01-01')"
    )
    base = {"tenant": str(uuid.uuid4()), "type": str(uuid.uuid4()), "by": str(uuid.uuid4())}

    with engine.begin() as conn:
        conn.execute(insert, {**base, "id": str(uuid.uuid4()), "status": "IN_INVENTORY", "holder": None, "price": None})

    for status, holder, price in (
        ("SOLD", None, None),
        ("WITH_EMPLOYEE", None, None),
        ("IN_INVENTORY", str(uuid.uuid4()), None),
        ("LOST", None, None),
    ):
        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                conn.execute(insert, {**base, "id": str(uuid.uuid4()), "status": status, "holder": holder, "price": price})


def test_downgrade_removes_schema(tmp_path: Path):
    database_url = f"sqlite+pysqlite:///{tmp_path / 'downgrade.db'}"
    config = _config(database_url)
    command.upgrade(config, "head")
    command.downgrade(config, "base")

    tables = set(inspect(create_engine(database_url, future=True)).get_table_names())
    assert "items" not in tables
    assert "item_types" not in tables
