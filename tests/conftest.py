"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from cmdbwalk.servicenow.queries import CI_TABLE, REL_TABLE
from cmdbwalk.utils.exceptions import NotFoundError, RemoteQueryError


@pytest.fixture(autouse=True)
def _env_setup(monkeypatch):
    """Set required environment variables for tests."""
    monkeypatch.setenv("SN_INSTANCE", "https://dev12345.service-now.com")
    monkeypatch.setenv("SN_USER", "admin")
    monkeypatch.setenv("SN_PASSWORD", "test")
    monkeypatch.setenv("SN_RETRY_BASE_DELAY", "0")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture
def settings():
    from cmdbwalk.config import Settings

    return Settings(
        SN_INSTANCE="dev12345.service-now.com/",
        SN_USER="admin",
        SN_PASSWORD="test",
        SN_RETRY_BASE_DELAY=0.0,
        SN_RATE_LIMIT_PER_SEC=1000.0,
        SN_RATE_LIMIT_BURST=100,
    )


class FakeRecordStore:
    """In-memory stand-in for the ServiceNow Table API.

    Relationship rows come back in ``sysparm_display_value=all`` shape and
    in insertion order; CI records come back as plain display strings.
    """

    def __init__(self) -> None:
        self.cis: dict[str, dict[str, str]] = {}
        self.rels: list[tuple[str, str, str]] = []
        self.failing_fetches: set[str] = set()
        self.failing_gets: set[str] = set()
        self.honour_limit = True
        self.rel_queries: list[str] = []
        self.gets: list[str] = []
        self.on_query = None

    def add_ci(self, sys_id: str, name: str | None = None, ci_class: str = "cmdb_ci") -> None:
        self.cis[sys_id] = {"name": name or sys_id, "sys_class_name": ci_class}

    def add_rel(self, parent: str, child: str, rel_type: str = "Depends on::Used by") -> None:
        self.rels.append((parent, child, rel_type))

    def _ref(self, sys_id: str) -> dict[str, str]:
        ci = self.cis.get(sys_id, {})
        return {
            "value": sys_id,
            "display_value": ci.get("name", ""),
            "link": f"https://dev12345.service-now.com/api/now/table/cmdb_ci/{sys_id}",
        }

    async def query(self, table, filter_expression, fields, limit, display_value=None) -> list[dict[str, Any]]:
        if self.on_query is not None:
            self.on_query(table, filter_expression)

        if table == REL_TABLE:
            node_id = filter_expression.split("^OR")[0].split("=", 1)[1]
            self.rel_queries.append(node_id)
            if node_id in self.failing_fetches:
                raise RemoteQueryError("Simulated outage", status=503)
            rows = [
                {
                    "parent": self._ref(p),
                    "child": self._ref(c),
                    "type": {"value": f"type-{t}", "display_value": t},
                }
                for p, c, t in self.rels
                if node_id in (p, c)
            ]
        elif table == CI_TABLE:
            name = filter_expression.split("=", 1)[1].replace("^^", "^")
            rows = [
                {"sys_id": sys_id, "name": ci["name"], "sys_class_name": ci["sys_class_name"]}
                for sys_id, ci in self.cis.items()
                if ci["name"] == name
            ]
        else:
            raise RemoteQueryError(f"Invalid table {table}", status=400)

        return rows[:limit] if self.honour_limit else rows

    async def get(self, table, sys_id, fields, display_value=None) -> dict[str, Any]:
        self.gets.append(sys_id)
        if sys_id in self.failing_gets:
            raise RemoteQueryError("Simulated outage", status=500)
        ci = self.cis.get(sys_id)
        if table != CI_TABLE or ci is None:
            raise NotFoundError(f"No {table} record with sys_id: {sys_id}")
        record = {"sys_id": sys_id, **ci}
        return {k: v for k, v in record.items() if k in fields}


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def chain_store(store) -> FakeRecordStore:
    """app -> db -> host -> rack, one relationship per hop."""
    store.add_ci("app", "Billing App", "Business Application")
    store.add_ci("db", "Billing DB", "Oracle Instance")
    store.add_ci("host", "dbhost01", "Linux Server")
    store.add_ci("rack", "Rack 12", "Rack")
    store.add_rel("app", "db", "Depends on::Used by")
    store.add_rel("db", "host", "Runs on::Runs")
    store.add_rel("host", "rack", "Located in::Houses")
    return store
