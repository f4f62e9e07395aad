"""
BOQ / KPI reconciliation service.

BOQ activities carry the total planned quantity; KPI records break it down
into dated planned targets and actual progress. This module derives daily
targets from BOQ totals, compares KPI progress with the BOQ, and checks new
KPI quantities against the BOQ ceiling. All functions are pure: callers
fetch records beforehand and persist results themselves.
"""
from datetime import date
from decimal import Decimal, localcontext
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from ..config import settings
from ..schemas.boq import (
    ActivityReconciliation,
    BOQActivity,
    BOQKPIComparison,
    InputType,
    KPIDraft,
    KPIDraftSummary,
    KPIRecord,
    KPIValidationResult,
    ProgressStatus,
    ReconciliationSummary,
)
from ..schemas.calendar import WorkCalendar
from .workdays import distribute_over_workdays


logger = structlog.get_logger(__name__)


def _dec(value) -> Decimal:
    if value is None:
        return Decimal(0)
    return Decimal(str(value))


def _quantize(value: Decimal) -> Decimal:
    if not value.is_finite():
        return value
    places = settings.quantity_decimal_places
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the decimal places
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        return value.quantize(Decimal(1).scaleb(-places))


def _as_float(value: Decimal) -> float:
    return float(_quantize(value))


def sum_quantities(values: Iterable[float]) -> float:
    """Add quantities without float drift (0.1 + 0.2 == 0.3)."""
    return _as_float(sum((_dec(v) for v in values), Decimal(0)))


def calculate_daily_target(activity: BOQActivity, fallback_days: int) -> float:
    """
    Daily quantity needed to finish an activity on time.

    Args:
        activity: BOQ activity
        fallback_days: Day count used when the activity has no positive calendar_duration

    Returns:
        planned_units / duration, or 0 when nothing is planned or the duration is not positive
    """
    planned = activity.planned_units or 0
    duration = activity.calendar_duration if activity.calendar_duration and activity.calendar_duration > 0 else fallback_days
    if planned <= 0 or not duration or duration <= 0:
        return 0.0
    return planned / duration


def derive_kpi_draft_from_boq(activity: BOQActivity, days: int, start_date: Optional[date] = None) -> KPIDraft:
    return KPIDraft(
        project_full_code=activity.full_code,
        activity_name=activity.activity_name,
        section=activity.zone_ref or "",
        quantity=calculate_daily_target(activity, days),
        input_type=InputType.planned,
        unit=activity.unit,
        activity_date=start_date,
        source="BOQ",
        source_activity_id=activity.id,
        total_planned=activity.planned_units,
        days_count=days,
    )


def classify_progress(
    progress_percentage: float,
    ahead_threshold: Optional[float] = None,
    on_track_threshold: Optional[float] = None,
) -> ProgressStatus:
    if ahead_threshold is None:
        ahead_threshold = settings.kpi_ahead_threshold_pct
    if on_track_threshold is None:
        on_track_threshold = settings.kpi_on_track_threshold_pct
    if progress_percentage >= ahead_threshold:
        return ProgressStatus.ahead
    if progress_percentage >= on_track_threshold:
        return ProgressStatus.on_track
    return ProgressStatus.behind


def compare_boq_with_kpi(
    activity: BOQActivity,
    kpi_records: Sequence[KPIRecord],
    ahead_threshold: Optional[float] = None,
    on_track_threshold: Optional[float] = None,
) -> BOQKPIComparison:
    """
    Compare KPI totals for an activity with its BOQ quantity.

    Args:
        activity: BOQ activity
        kpi_records: Every KPI record of the activity (planned and actual)
        ahead_threshold: Progress % at or above which the activity is ahead (default from settings)
        on_track_threshold: Progress % at or above which it is on track (default from settings)

    Returns:
        BOQKPIComparison; an activity with nothing planned reports 0% and behind
    """
    records = list(kpi_records)
    boq_planned = _dec(activity.planned_units)
    total_planned = Decimal(0)
    total_actual = Decimal(0)
    for record in records:
        if record.input_type == InputType.planned:
            total_planned += _dec(record.quantity)
        else:
            total_actual += _dec(record.quantity)

    variance = total_actual - boq_planned
    if boq_planned > 0:
        progress = float(total_actual / boq_planned * 100)
        status = classify_progress(progress, ahead_threshold, on_track_threshold)
    else:
        progress = 0.0
        status = ProgressStatus.behind

    unplanned_actual = boq_planned == 0 and total_actual > 0
    if unplanned_actual:
        logger.warning(
            "kpi_actual_without_boq_plan",
            project_code=activity.full_code,
            activity_name=activity.activity_name,
            actual=_as_float(total_actual),
        )

    return BOQKPIComparison(
        boq_planned=_as_float(boq_planned),
        kpi_total_planned=_as_float(total_planned),
        kpi_total_actual=_as_float(total_actual),
        variance=_as_float(variance),
        progress_percentage=progress,
        status=status,
        record_count=len(records),
        unplanned_actual=unplanned_actual,
    )


def validate_kpi_against_boq(
    activity: BOQActivity,
    new_quantity: float,
    existing_total: float = 0,
) -> KPIValidationResult:
    """
    Check that adding a planned KPI quantity keeps the total within the BOQ.

    Advisory only: nothing is raised or mutated, the caller decides whether to
    block the write or just warn. Reaching the BOQ quantity exactly is valid.
    """
    limit = _dec(activity.planned_units)
    new_total = _dec(existing_total) + _dec(new_quantity)

    if not new_total.is_finite() or new_total > limit:
        message = f"Total KPI ({_as_float(new_total):g}) exceeds BOQ planned ({_as_float(limit):g})"
        logger.info(
            "kpi_exceeds_boq",
            project_code=activity.full_code,
            activity_name=activity.activity_name,
            new_total=_as_float(new_total),
            boq_limit=_as_float(limit),
        )
        return KPIValidationResult(
            valid=False,
            message=message,
            new_total=_as_float(new_total),
            boq_limit=_as_float(limit),
            excess=_as_float(new_total - limit),
        )

    return KPIValidationResult(
        valid=True,
        message="Valid",
        new_total=_as_float(new_total),
        boq_limit=_as_float(limit),
    )


def validate_kpi_batch(
    activity: BOQActivity,
    quantities: Iterable[float],
    existing_total: float = 0,
) -> List[KPIValidationResult]:
    """Validate candidate quantities in order, each on top of the ones before it."""
    results: List[KPIValidationResult] = []
    running = _dec(existing_total)
    for quantity in quantities:
        result = validate_kpi_against_boq(activity, quantity, float(running))
        results.append(result)
        running += _dec(quantity)
    return results


def coerce_kpi_records(rows: Iterable[Union[KPIRecord, Mapping[str, Any]]]) -> List[KPIRecord]:
    """
    Turn stored KPI rows into KPIRecords, dropping rows that fail validation.

    Dropped rows are logged; they never reach the totals.
    """
    records: List[KPIRecord] = []
    for index, row in enumerate(rows):
        if isinstance(row, KPIRecord):
            records.append(row)
            continue
        try:
            records.append(KPIRecord.model_validate(dict(row)))
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("kpi_record_dropped", index=index, error=str(e))
    return records


def planned_total(kpi_records: Iterable[KPIRecord]) -> float:
    """Running total of the Planned series, the ``existing_total`` for validation."""
    return sum_quantities(r.quantity for r in kpi_records if r.input_type == InputType.planned)


def record_matches_activity(activity: BOQActivity, record: KPIRecord) -> bool:
    codes = {c for c in (activity.project_full_code, activity.project_code) if c}
    if record.project_full_code not in codes:
        return False
    if record.activity_name != activity.activity_name:
        return False
    if activity.zone_ref:
        return record.section == activity.zone_ref
    return True


def records_for_activity(activity: BOQActivity, kpi_records: Iterable[KPIRecord]) -> List[KPIRecord]:
    return [r for r in kpi_records if record_matches_activity(activity, r)]


def reconcile_activities(
    activities: Sequence[BOQActivity],
    kpi_records: Sequence[KPIRecord],
) -> ReconciliationSummary:
    """
    Compare every activity of a project with its KPI records.

    Records are attached to the first matching activity only, so a record is
    never counted twice; records that match no activity are reported as
    ``unmatched_records``.
    """
    remaining = list(kpi_records)
    rows: List[ActivityReconciliation] = []
    counts: Dict[str, int] = {s.value: 0 for s in ProgressStatus}

    for activity in activities:
        matched: List[KPIRecord] = []
        unmatched: List[KPIRecord] = []
        for record in remaining:
            (matched if record_matches_activity(activity, record) else unmatched).append(record)
        remaining = unmatched

        comparison = compare_boq_with_kpi(activity, matched)
        counts[comparison.status.value] += 1
        rows.append(
            ActivityReconciliation(
                project_code=activity.full_code,
                activity_name=activity.activity_name,
                zone_ref=activity.zone_ref,
                comparison=comparison,
            )
        )

    if remaining:
        logger.warning("kpi_records_unmatched", count=len(remaining))

    return ReconciliationSummary(rows=rows, status_counts=counts, unmatched_records=len(remaining))


def generate_planned_kpis(activity: BOQActivity, calendar: Optional[WorkCalendar] = None) -> List[KPIDraft]:
    """
    Spread an activity's planned units over its working days.

    Requires a planned start date, a deadline and a positive planned quantity;
    otherwise returns an empty list. One draft is produced per working day.
    """
    if not activity.planned_activity_start_date or not activity.deadline:
        logger.info("kpi_generation_skipped", reason="missing_dates", activity_name=activity.activity_name)
        return []
    if not activity.planned_units or activity.planned_units <= 0:
        logger.info("kpi_generation_skipped", reason="no_planned_units", activity_name=activity.activity_name)
        return []

    distribution = distribute_over_workdays(
        activity.planned_activity_start_date,
        activity.deadline,
        activity.planned_units,
        calendar,
    )
    if not distribution:
        logger.info("kpi_generation_skipped", reason="no_working_days", activity_name=activity.activity_name)
        return []

    days_count = len(distribution)
    return [
        KPIDraft(
            project_full_code=activity.full_code,
            activity_name=activity.activity_name,
            section=activity.zone_ref or "",
            quantity=quantity,
            input_type=InputType.planned,
            unit=activity.unit or "No.",
            activity_date=day,
            day_label=f"Day {index} - {day.strftime('%A')}",
            source="BOQ",
            source_activity_id=activity.id,
            total_planned=activity.planned_units,
            days_count=days_count,
        )
        for index, (day, quantity) in enumerate(distribution, start=1)
    ]


def summarize_kpi_drafts(drafts: Sequence[KPIDraft]) -> KPIDraftSummary:
    if not drafts:
        return KPIDraftSummary()
    total = sum((_dec(d.quantity) for d in drafts), Decimal(0))
    dates = sorted(d.activity_date for d in drafts if d.activity_date is not None)
    return KPIDraftSummary(
        total_quantity=float(round(total, 2)),
        number_of_days=len(drafts),
        average_per_day=float(round(total / len(drafts), 2)),
        start_date=dates[0] if dates else None,
        end_date=dates[-1] if dates else None,
    )
