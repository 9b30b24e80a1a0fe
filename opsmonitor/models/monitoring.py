from __future__ import annotations
from sqlalchemy import Column, String, Float, DateTime, Text, JSON, Index, UniqueConstraint, func
from opsmonitor.core.database import Base, utcnow, new_id


class Metric(Base):
    __tablename__ = "monitoring_metrics"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), index=True, nullable=False)
    metric_name = Column(String(255), index=True, nullable=False)
    metric_value = Column(Float, nullable=False)
    metric_type = Column(String(16), nullable=False, default="gauge")   # counter | gauge | histogram | summary
    labels = Column(JSON, nullable=False, default=dict)                   # {"region": "eu", ...}
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_monitoring_metrics_user_name_ts", "user_id", "metric_name", "timestamp"),
    )


class Log(Base):
    __tablename__ = "monitoring_logs"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), index=True, nullable=False)
    level = Column(String(8), index=True, nullable=False)                # debug | info | warn | error | fatal
    message = Column(Text, nullable=False)
    service = Column(String(255), index=True, nullable=False)
    context = Column(JSON, nullable=False, default=dict)
    trace_id = Column(String(64), nullable=True)
    span_id = Column(String(64), nullable=True)
    timestamp = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class Alert(Base):
    __tablename__ = "monitoring_alerts"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), index=True, nullable=False)
    alert_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String(16), index=True, nullable=False)            # low | medium | high | critical
    status = Column(String(16), index=True, nullable=False, default="active")  # active | resolved | suppressed
    condition = Column(JSON, nullable=False, default=dict)                # {"operator": "greater_than", ...}
    threshold_value = Column(Float, nullable=False)
    current_value = Column(Float, nullable=False)
    triggered_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow, server_default=func.now())
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    notification_channels = Column(JSON, nullable=False, default=list)   # ["email", "slack"]
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
                        server_default=func.now())


class HealthCheck(Base):
    __tablename__ = "monitoring_health_checks"
    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), index=True, nullable=False)
    service_name = Column(String(255), nullable=False)
    endpoint = Column(String(1000), nullable=False)
    status = Column(String(16), nullable=False, default="healthy")       # healthy | degraded | unhealthy
    response_time = Column(Float, nullable=False, default=0)             # ms
    last_check = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    error_message = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    check_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
                        server_default=func.now())

    __table_args__ = (
        UniqueConstraint("service_name", "user_id", name="uq_monitoring_health_checks_service_user"),
    )
