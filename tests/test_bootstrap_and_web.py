from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from flask import Flask

from src.hr_admin_system.hr_admin_system.common.web import client_ip, query_bool, query_int, to_jsonable
from src.hr_admin_system.hr_admin_system.core.enums import Role
from src.hr_admin_system.hr_admin_system.core.exceptions import ValidationError
from src.hr_admin_system.hr_admin_system.database.bootstrap import split_schema


SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_schema_splits_into_table_statements_only():
    statements = split_schema(SCHEMA.read_text(encoding="utf-8"))
    tables = [re.search(r"CREATE TABLE IF NOT EXISTS (\w+)", s).group(1) for s in statements]

    assert tables == [
        "users",
        "employees",
        "accommodations",
        "rooms",
        "room_allocations",
        "audit_logs",
        "advance_requests",
        "contracts",
    ]


def test_split_schema_keeps_semicolons_inside_quotes():
    sql = "CREATE DATABASE x;\nUSE x;\n-- note\nINSERT INTO t VALUES ('a;b');\nSELECT 1;"

    assert split_schema(sql) == ["INSERT INTO t VALUES ('a;b')", "SELECT 1"]


@dataclass(frozen=True)
class _Row:
    day: date
    amount: Decimal
    role: Role
    tags: tuple


def test_to_jsonable_handles_nested_values():
    value = {"row": _Row(day=date(2026, 1, 2), amount=Decimal("1.50"), role=Role.HR, tags=("a",)), "at": datetime(2026, 1, 2, 3, 4)}

    assert to_jsonable(value) == {
        "row": {"day": "2026-01-02", "amount": "1.50", "role": "HR", "tags": ["a"]},
        "at": "2026-01-02T03:04:00",
    }


def test_request_helpers():
    app = Flask(__name__)

    with app.test_request_context("/?page=3&active=yes", headers={"X-Forwarded-For": "1.2.3.4, 10.0.0.1"}):
        assert client_ip() == "1.2.3.4"
        assert query_int("page") == 3
        assert query_int("size", 20) == 20
        assert query_bool("active") is True
        assert query_bool("missing") is None

    with app.test_request_context("/?page=x&active=maybe", environ_base={"REMOTE_ADDR": "9.9.9.9"}):
        assert client_ip() == "9.9.9.9"
        with pytest.raises(ValidationError):
            query_int("page")
        with pytest.raises(ValidationError):
            query_bool("active")
