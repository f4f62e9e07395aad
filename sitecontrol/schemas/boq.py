from datetime import date
from enum import Enum
from typing import Dict, List, Optional

import structlog
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from ..config import settings
from ..services.workdays import to_local_date


logger = structlog.get_logger(__name__)


class InputType(str, Enum):
    planned = "Planned"
    actual = "Actual"


class ProgressStatus(str, Enum):
    ahead = "ahead"
    on_track = "on_track"
    behind = "behind"


class BOQActivity(BaseModel):
    id: Optional[str] = None
    project_code: str = ""
    project_full_code: Optional[str] = None
    activity_name: str = ""
    unit: Optional[str] = None
    planned_units: float = Field(default=0, ge=0, allow_inf_nan=False)
    actual_units: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    total_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    calendar_duration: Optional[int] = None  # days; <= 0 means "use the caller's day count"
    zone_ref: Optional[str] = None
    planned_activity_start_date: Optional[date] = None
    deadline: Optional[date] = None

    @field_validator("planned_units", mode="before")
    @classmethod
    def _missing_units_are_zero(cls, v):
        return 0 if v is None or v == "" else v

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return None if v is None else str(v)

    @field_validator("planned_activity_start_date", "deadline", mode="before")
    @classmethod
    def _parse_dates(cls, v):
        return to_local_date(v)

    @property
    def full_code(self) -> str:
        return self.project_full_code or self.project_code


class KPIRecord(BaseModel):
    """
    A dated planned or actual quantity against a BOQ activity.

    Legacy rows may carry ``actual_date`` or ``target_date`` instead of
    ``activity_date``; ``effective_date`` reads them in that order and never
    combines them. Spreadsheet-style column names ("Input Type", "Activity Date")
    are accepted as input aliases.
    """

    id: Optional[str] = None
    project_full_code: str = Field(default="", validation_alias=AliasChoices("project_full_code", "Project Full Code"))
    activity_name: str = Field(default="", validation_alias=AliasChoices("activity_name", "Activity Name"))
    section: str = Field(default="", validation_alias=AliasChoices("section", "Section"))
    quantity: float = Field(default=0, ge=0, allow_inf_nan=False, validation_alias=AliasChoices("quantity", "Quantity"))
    input_type: InputType = Field(validation_alias=AliasChoices("input_type", "Input Type"))
    activity_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("activity_date", "Activity Date"))
    # Deprecated
    actual_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("actual_date", "Actual Date"))
    target_date: Optional[date] = Field(default=None, validation_alias=AliasChoices("target_date", "Target Date"))

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return None if v is None else str(v)

    @field_validator("project_full_code", "activity_name", "section", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("quantity", mode="before")
    @classmethod
    def _missing_quantity_is_zero(cls, v):
        return 0 if v is None or v == "" else v

    @field_validator("input_type", mode="before")
    @classmethod
    def _normalize_input_type(cls, v):
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered == "planned":
                return InputType.planned
            if lowered == "actual":
                return InputType.actual
        return v

    @field_validator("activity_date", "actual_date", "target_date", mode="before")
    @classmethod
    def _parse_dates(cls, v):
        return to_local_date(v)

    @model_validator(mode="after")
    def _check_date_sources(self):
        populated = {d for d in (self.activity_date, self.actual_date, self.target_date) if d is not None}
        if len(populated) > 1:
            if settings.strict_kpi_dates:
                raise ValueError(
                    "KPI record carries conflicting dates "
                    f"(activity_date={self.activity_date}, actual_date={self.actual_date}, target_date={self.target_date})"
                )
            logger.warning(
                "kpi_conflicting_dates",
                record_id=self.id,
                activity_date=str(self.activity_date),
                actual_date=str(self.actual_date),
                target_date=str(self.target_date),
            )
        return self

    @property
    def effective_date(self) -> Optional[date]:
        if self.activity_date is not None:
            return self.activity_date
        if self.actual_date is not None:
            return self.actual_date
        return self.target_date


class KPIDraft(BaseModel):
    project_full_code: str
    activity_name: str
    section: str = ""
    quantity: float
    input_type: InputType = InputType.planned
    unit: Optional[str] = None
    activity_date: Optional[date] = None
    day_label: Optional[str] = None
    # Provenance
    source: str = "BOQ"
    source_activity_id: Optional[str] = None
    total_planned: float
    days_count: int


class KPIDraftSummary(BaseModel):
    total_quantity: float = 0
    number_of_days: int = 0
    average_per_day: float = 0
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class BOQKPIComparison(BaseModel):
    boq_planned: float
    kpi_total_planned: float
    kpi_total_actual: float
    variance: float
    progress_percentage: float
    status: ProgressStatus
    record_count: int = 0
    unplanned_actual: bool = False  # actual work recorded against an activity with nothing planned


class KPIValidationResult(BaseModel):
    valid: bool
    message: str
    new_total: float = 0
    boq_limit: float = 0
    excess: float = 0


class ActivityReconciliation(BaseModel):
    project_code: str
    activity_name: str
    zone_ref: Optional[str] = None
    comparison: BOQKPIComparison


class ReconciliationSummary(BaseModel):
    rows: List[ActivityReconciliation] = []
    status_counts: Dict[str, int] = {}
    unmatched_records: int = 0
