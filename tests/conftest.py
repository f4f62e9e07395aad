"""
Shared pytest fixtures for the Site Control Core test suite.

Provides:
    - _logging: structlog configured once per session (autouse)
    - make_activity / make_kpi: record factories with sensible defaults
    - engineer / admin users
"""

from datetime import date

import pytest

from sitecontrol.logging import setup_logging
from sitecontrol.schemas.boq import BOQActivity, KPIRecord
from sitecontrol.schemas.permissions import UserPermissionRecord


@pytest.fixture(scope="session", autouse=True)
def _logging():
    # Uncached so structlog.testing.capture_logs sees every event
    setup_logging("WARNING", cache_loggers=False)


@pytest.fixture
def make_activity():
    def _make(**kw):
        data = {
            "id": "act-1",
            "project_code": "P5066",
            "project_full_code": "P5066-01",
            "activity_name": "Bored Piles",
            "unit": "No.",
            "planned_units": 100,
            "zone_ref": "Zone A",
        }
        data.update(kw)
        return BOQActivity(**data)
    return _make


@pytest.fixture
def make_kpi():
    def _make(quantity, input_type="Actual", **kw):
        data = {
            "project_full_code": "P5066-01",
            "activity_name": "Bored Piles",
            "section": "Zone A",
            "quantity": quantity,
            "input_type": input_type,
            "activity_date": date(2025, 3, 1),
        }
        data.update(kw)
        return KPIRecord(**data)
    return _make


@pytest.fixture
def engineer():
    return UserPermissionRecord(id="u-eng", role="engineer", custom_permissions_enabled=False, permissions=[])


@pytest.fixture
def admin():
    return UserPermissionRecord(id="u-admin", role="admin", custom_permissions_enabled=False, permissions=[])
