from __future__ import annotations
from datetime import datetime, timezone
from typing import Annotated, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field, JsonValue

from opsmonitor.core.database import utcnow

T = TypeVar("T")

MetricType = Literal["counter", "gauge", "histogram", "summary"]
LogLevel = Literal["debug", "info", "warn", "error", "fatal"]
AlertSeverity = Literal["low", "medium", "high", "critical"]
AlertStatus = Literal["active", "resolved", "suppressed"]
HealthStatus = Literal["healthy", "degraded", "unhealthy"]
OverallStatus = Literal["healthy", "warning", "critical", "degraded"]
Trend = Literal["up", "down", "stable"]

# string-keyed map of json values (str / number / bool / null / nested map / list)
JsonMap = Dict[str, JsonValue]


def as_utc(value: datetime) -> datetime:
    # naive values are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# ---- envelopes ---------------------------------------------------------------

class ApiResponse(BaseModel, Generic[T]):
    data: T
    message: Optional[str] = None
    success: bool = True
    timestamp: str = Field(default_factory=lambda: utcnow().isoformat())


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination
    success: bool = True


# ---- metrics -----------------------------------------------------------------

class MetricIn(BaseModel):
    metric_name: str = Field(min_length=1)
    metric_value: float
    metric_type: MetricType = "gauge"
    labels: Dict[str, str] = Field(default_factory=dict)
    timestamp: Optional[UtcDatetime] = None


class MetricUpdate(BaseModel):
    metric_value: Optional[float] = None
    labels: Optional[Dict[str, str]] = None


class MetricOut(BaseModel):
    id: str
    user_id: str
    metric_name: str
    metric_value: float
    metric_type: MetricType
    labels: Dict[str, str]
    timestamp: datetime
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MetricFilter(BaseModel):
    metric_name: Optional[str] = None
    metric_type: Optional[MetricType] = None
    start_time: Optional[UtcDatetime] = None
    end_time: Optional[UtcDatetime] = None
    labels: Optional[Dict[str, str]] = None


class TimeSeriesPoint(BaseModel):
    timestamp: datetime
    value: float
    labels: Dict[str, str] = Field(default_factory=dict)


class SeriesStats(BaseModel):
    current: float = 0
    average: float = 0
    minimum: float = 0
    maximum: float = 0
    trend: Trend = "stable"
    points: int = 0


# ---- logs --------------------------------------------------------------------

class LogIn(BaseModel):
    level: LogLevel
    message: str
    service: str = Field(min_length=1)
    context: JsonMap = Field(default_factory=dict)
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    timestamp: Optional[UtcDatetime] = None


class LogOut(BaseModel):
    id: str
    user_id: str
    level: LogLevel
    message: str
    service: str
    context: JsonMap
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    timestamp: datetime
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LogEntry(BaseModel):
    """List-view projection of a log row."""
    id: str
    level: LogLevel
    message: str
    service: str
    timestamp: datetime
    context: JsonMap
    model_config = ConfigDict(from_attributes=True)


class LogFilter(BaseModel):
    level: Optional[LogLevel] = None
    service: Optional[str] = None
    start_time: Optional[UtcDatetime] = None
    end_time: Optional[UtcDatetime] = None
    search: Optional[str] = None


class LogStats(BaseModel):
    total: int = 0
    by_level: Dict[str, int] = Field(default_factory=dict)
    by_service: Dict[str, int] = Field(default_factory=dict)


# ---- alerts ------------------------------------------------------------------

class AlertIn(BaseModel):
    alert_name: str = Field(min_length=1)
    description: Optional[str] = None
    severity: AlertSeverity
    condition: JsonMap = Field(default_factory=dict)
    threshold_value: float
    current_value: float
    triggered_at: Optional[UtcDatetime] = None
    notification_channels: List[str] = Field(default_factory=list)


class AlertUpdate(BaseModel):
    # severity / condition are fixed at creation
    status: Optional[AlertStatus] = None
    current_value: Optional[float] = None


class AlertOut(BaseModel):
    id: str
    user_id: str
    alert_name: str
    description: Optional[str] = None
    severity: AlertSeverity
    status: AlertStatus
    condition: JsonMap
    threshold_value: float
    current_value: float
    triggered_at: datetime
    resolved_at: Optional[datetime] = None
    notification_channels: List[str]
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AlertFilter(BaseModel):
    status: Optional[AlertStatus] = None
    severity: Optional[AlertSeverity] = None
    start_time: Optional[UtcDatetime] = None
    end_time: Optional[UtcDatetime] = None


# ---- health checks -----------------------------------------------------------

class HealthCheckIn(BaseModel):
    service_name: str = Field(min_length=1)
    endpoint: str
    status: HealthStatus = "healthy"
    response_time: float = Field(default=0, ge=0)
    last_check: Optional[UtcDatetime] = None
    error_message: Optional[str] = None
    metadata: JsonMap = Field(default_factory=dict)


class HealthCheckUpdate(BaseModel):
    status: Optional[HealthStatus] = None
    response_time: Optional[float] = Field(default=None, ge=0)
    last_check: Optional[UtcDatetime] = None
    error_message: Optional[str] = None
    metadata: Optional[JsonMap] = None


class HealthCheckOut(BaseModel):
    id: str
    user_id: str
    service_name: str
    endpoint: str
    status: HealthStatus
    response_time: float
    last_check: datetime
    error_message: Optional[str] = None
    metadata: JsonMap = Field(validation_alias=AliasChoices("check_metadata", "metadata"))
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class HealthCheckFilter(BaseModel):
    status: Optional[HealthStatus] = None
    service_name: Optional[str] = None


# ---- dashboard ---------------------------------------------------------------

class MetricsSummary(BaseModel):
    total_requests: float = 0
    error_rate: float = 0
    average_response_time: float = 0
    active_users: float = 0
    model_config = ConfigDict(frozen=True)


class AlertsSummary(BaseModel):
    active: int = 0
    critical: int = 0
    resolved_today: int = 0
    model_config = ConfigDict(frozen=True)


class HealthChecksSummary(BaseModel):
    healthy_services: int = 0
    total_services: int = 0
    degraded_services: int = 0
    model_config = ConfigDict(frozen=True)


class LogsSummary(BaseModel):
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    model_config = ConfigDict(frozen=True)


class DashboardSummary(BaseModel):
    metrics: MetricsSummary
    alerts: AlertsSummary
    health_checks: HealthChecksSummary
    logs: LogsSummary
    generated_at: datetime
    model_config = ConfigDict(frozen=True)


class SystemStatus(BaseModel):
    status: OverallStatus
    summary: DashboardSummary
