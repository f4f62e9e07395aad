"""
Structured log events emitted by the services.
"""

import structlog
from structlog.testing import capture_logs

from sitecontrol.logging import bind_context, clear_context
from sitecontrol.services.boq_kpi import coerce_kpi_records, compare_boq_with_kpi, validate_kpi_against_boq
from sitecontrol.services.permissions import coerce_user


class TestLogEvents:

    def test_exceeding_boq_is_logged(self, make_activity):
        with capture_logs() as logs:
            validate_kpi_against_boq(make_activity(planned_units=100), 30, 80)
        event = next(e for e in logs if e["event"] == "kpi_exceeds_boq")
        assert event["log_level"] == "info"
        assert event["new_total"] == 110
        assert event["project_code"] == "P5066-01"

    def test_unplanned_actual_is_warned(self, make_activity, make_kpi):
        with capture_logs() as logs:
            compare_boq_with_kpi(make_activity(planned_units=0), [make_kpi(5)])
        assert any(e["event"] == "kpi_actual_without_boq_plan" and e["log_level"] == "warning" for e in logs)

    def test_dropped_row_is_warned(self):
        with capture_logs() as logs:
            coerce_kpi_records([{"quantity": 1, "input_type": "Forecast"}])
        assert [e["index"] for e in logs if e["event"] == "kpi_record_dropped"] == [0]

    def test_invalid_user_is_warned(self):
        with capture_logs() as logs:
            coerce_user({"role": "admin", "email": 123})
        assert any(e["event"] == "user_record_invalid" for e in logs)


class TestContext:

    def test_bind_and_clear(self):
        clear_context()
        bind_context(project_code="P5066", user_id="u-1")
        assert structlog.contextvars.get_contextvars() == {"project_code": "P5066", "user_id": "u-1"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
