"""
Progress calculation service.
Activity and project progress from planned vs actual quantities and values.
"""
from typing import Dict, Iterable, List, Sequence, Tuple

from ..schemas.boq import BOQActivity


# (threshold %, status, label, colour), checked top-down
PROJECT_STATUS_BANDS: List[Tuple[float, str, str, str]] = [
    (100.0, "completed", "Completed", "green"),
    (80.0, "on_track", "On Track", "blue"),
    (50.0, "at_risk", "At Risk", "yellow"),
]


def calculate_activity_progress(planned_units: float, actual_units: float) -> float:
    """
    Progress of one activity.

    Args:
        planned_units: Planned quantity
        actual_units: Quantity achieved so far

    Returns:
        actual / planned * 100, or 0 when nothing is planned
    """
    if not planned_units or planned_units <= 0:
        return 0.0
    return (actual_units or 0) / planned_units * 100


def calculate_project_progress(progress_values: Sequence[float]) -> float:
    """Simple average of activity progress percentages."""
    if not progress_values:
        return 0.0
    return sum(progress_values) / len(progress_values)


def calculate_weighted_project_progress(items: Sequence[Tuple[float, float]]) -> float:
    """
    Value-weighted average of activity progress.

    Args:
        items: (progress_percentage, total_value) pairs

    Returns:
        Weighted average; the simple average when no item has a value
    """
    if not items:
        return 0.0
    total_value = sum(value or 0 for _, value in items)
    if total_value == 0:
        return calculate_project_progress([progress for progress, _ in items])
    return sum(progress * ((value or 0) / total_value) for progress, value in items)


def calculate_project_progress_by_units(activities: Iterable[BOQActivity]) -> float:
    total_planned = 0.0
    total_actual = 0.0
    for activity in activities:
        total_planned += activity.planned_units or 0
        total_actual += activity.actual_units or 0
    if total_planned == 0:
        return 0.0
    return total_actual / total_planned * 100


def calculate_delay_percentage(planned_units: float, actual_units: float) -> float:
    if not planned_units or planned_units <= 0:
        return 0.0
    return (planned_units - (actual_units or 0)) / planned_units * 100


def calculate_variance(planned_units: float, actual_units: float) -> float:
    return (actual_units or 0) - (planned_units or 0)


def calculate_remaining_work(total_units: float, actual_units: float) -> float:
    return max(0.0, (total_units or 0) - (actual_units or 0))


def get_project_status(progress_percentage: float) -> Dict[str, str]:
    for threshold, status, label, color in PROJECT_STATUS_BANDS:
        if progress_percentage >= threshold:
            return {"status": status, "label": label, "color": color}
    return {"status": "delayed", "label": "Delayed", "color": "red"}
