"""
Input normalization at the schema boundary: KPI records, BOQ activities,
user permission records and access expressions.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from sitecontrol.config import settings
from sitecontrol.schemas.boq import BOQActivity, InputType, KPIRecord
from sitecontrol.schemas.permissions import AccessExpression


class TestKPIRecord:

    def test_spreadsheet_aliases(self):
        record = KPIRecord.model_validate({
            "Project Full Code": "P5066-01",
            "Activity Name": "Bored Piles",
            "Section": "Zone A",
            "Quantity": "12.5",
            "Input Type": " PLANNED ",
            "Activity Date": "2025-03-01",
        })
        assert record.input_type == InputType.planned
        assert record.quantity == 12.5
        assert record.activity_date == date(2025, 3, 1)

    def test_unknown_input_type_rejected(self):
        with pytest.raises(ValidationError):
            KPIRecord(quantity=1, input_type="Forecast")

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            KPIRecord(quantity=-1, input_type="Actual")

    @pytest.mark.parametrize("value", [float("inf"), float("nan"), "inf"])
    def test_non_finite_quantity_rejected(self, value):
        with pytest.raises(ValidationError):
            KPIRecord(quantity=value, input_type="Actual")

    def test_missing_values(self):
        record = KPIRecord(quantity=None, input_type="actual", section=None)
        assert record.quantity == 0
        assert record.section == ""
        assert record.effective_date is None

    def test_effective_date_fallback(self):
        assert KPIRecord(input_type="Actual", actual_date="2025-03-02").effective_date == date(2025, 3, 2)
        assert KPIRecord(input_type="Planned", target_date="2025-03-03").effective_date == date(2025, 3, 3)

    def test_conflicting_dates_prefer_activity_date(self):
        record = KPIRecord(input_type="Actual", activity_date="2025-03-01", actual_date="2025-03-05")
        assert record.effective_date == date(2025, 3, 1)

    def test_conflicting_dates_rejected_in_strict_mode(self, monkeypatch):
        monkeypatch.setattr(settings, "strict_kpi_dates", True)
        with pytest.raises(ValidationError):
            KPIRecord(input_type="Actual", activity_date="2025-03-01", actual_date="2025-03-05")
        # Same day in two fields is not a conflict
        record = KPIRecord(input_type="Actual", activity_date="2025-03-01", actual_date="2025-03-01")
        assert record.effective_date == date(2025, 3, 1)

    def test_timestamp_uses_local_day(self):
        record = KPIRecord(input_type="Actual", activity_date=datetime(2025, 3, 1, 21, 30))
        assert record.activity_date == date(2025, 3, 2)


class TestBOQActivity:

    def test_full_code_fallback(self):
        assert BOQActivity(project_code="P1", project_full_code="P1-02").full_code == "P1-02"
        assert BOQActivity(project_code="P1").full_code == "P1"

    def test_numeric_id(self):
        assert BOQActivity(id=15).id == "15"

    def test_negative_planned_rejected(self):
        with pytest.raises(ValidationError):
            BOQActivity(planned_units=-5)

    @pytest.mark.parametrize("field", ["planned_units", "actual_units", "total_value"])
    def test_non_finite_numbers_rejected(self, field):
        with pytest.raises(ValidationError):
            BOQActivity(**{field: float("inf")})

    def test_dates_parsed(self):
        activity = BOQActivity(planned_activity_start_date="2025-01-05", deadline="2025-02-05")
        assert activity.planned_activity_start_date == date(2025, 1, 5)
        assert activity.deadline == date(2025, 2, 5)


class TestAccessExpressionSchema:

    def test_blank_criteria_are_unset(self):
        expr = AccessExpression(permission=" ", category="", role=None, permissions=["", " "])
        assert expr.permission is None
        assert expr.category is None
        assert expr.permissions is None

    def test_single_string_permissions(self):
        assert AccessExpression(permissions="kpi.view").permissions == ["kpi.view"]
