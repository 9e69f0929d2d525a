"""Summary schemas."""

from datetime import date as dt_date, datetime

from pydantic import BaseModel, ConfigDict


class SummaryRead(BaseModel):
    date: dt_date
    source_service: str
    module_name: str
    action: str
    total_count: int
    unique_users: int
    avg_processing_time: float | None
    last_aggregated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ServiceBreakdown(BaseModel):
    service: str
    total_logs: int


class SummaryStats(BaseModel):
    total_summaries: int
    total_logs_aggregated: int
    service_breakdown: list[ServiceBreakdown]


class AggregateRequest(BaseModel):
    date_from: dt_date
    date_to: dt_date


class AggregateResponse(BaseModel):
    dates_processed: int
    message: str
