from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    # Core
    environment: str = Field(default="dev")
    app_name: str = Field(default="Site Control Core")
    tz_default: str = Field(default="Asia/Dubai", alias="TZ_DEFAULT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # BOQ / KPI reconciliation
    kpi_ahead_threshold_pct: float = Field(default=100.0, alias="KPI_AHEAD_THRESHOLD_PCT")
    kpi_on_track_threshold_pct: float = Field(default=80.0, alias="KPI_ON_TRACK_THRESHOLD_PCT")
    quantity_decimal_places: int = Field(default=6, alias="QUANTITY_DECIMAL_PLACES")
    strict_kpi_dates: bool = Field(default=False, alias="STRICT_KPI_DATES")

    # Working calendar (Python weekday numbers, Monday=0 ... Sunday=6)
    weekend_days: List[int] = Field(default=[6], alias="WEEKEND_DAYS")

    # Permissions
    default_role: str = Field(default="viewer", alias="DEFAULT_ROLE")
    admin_role: str = Field(default="admin", alias="ADMIN_ROLE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
