"""
Activity and project progress calculations.
"""

import pytest

from sitecontrol.services.progress import (
    calculate_activity_progress,
    calculate_delay_percentage,
    calculate_project_progress,
    calculate_project_progress_by_units,
    calculate_remaining_work,
    calculate_variance,
    calculate_weighted_project_progress,
    get_project_status,
)


class TestActivityProgress:

    def test_basic(self):
        assert calculate_activity_progress(200, 50) == pytest.approx(25.0)

    def test_no_plan(self):
        assert calculate_activity_progress(0, 50) == 0
        assert calculate_activity_progress(None, 50) == 0

    def test_over_delivery_is_not_capped(self):
        assert calculate_activity_progress(100, 120) == pytest.approx(120.0)

    def test_delay_variance_remaining(self):
        assert calculate_delay_percentage(100, 30) == pytest.approx(70.0)
        assert calculate_delay_percentage(0, 30) == 0
        assert calculate_variance(100, 30) == -70
        assert calculate_remaining_work(100, 30) == 70
        assert calculate_remaining_work(100, 130) == 0


class TestProjectProgress:

    def test_simple_average(self):
        assert calculate_project_progress([10, 20, 60]) == pytest.approx(30.0)
        assert calculate_project_progress([]) == 0

    def test_weighted_by_value(self):
        items = [(100, 300), (0, 100)]
        assert calculate_weighted_project_progress(items) == pytest.approx(75.0)

    def test_weighted_without_values_is_simple_average(self):
        assert calculate_weighted_project_progress([(100, 0), (0, None)]) == pytest.approx(50.0)
        assert calculate_weighted_project_progress([]) == 0

    def test_by_units(self, make_activity):
        activities = [
            make_activity(planned_units=100, actual_units=50),
            make_activity(planned_units=300, actual_units=None),
        ]
        assert calculate_project_progress_by_units(activities) == pytest.approx(12.5)
        assert calculate_project_progress_by_units([make_activity(planned_units=0)]) == 0

    @pytest.mark.parametrize("pct,status", [
        (120, "completed"),
        (100, "completed"),
        (80, "on_track"),
        (50, "at_risk"),
        (49.9, "delayed"),
        (0, "delayed"),
    ])
    def test_status_bands(self, pct, status):
        assert get_project_status(pct)["status"] == status
