"""monitoring metrics, logs, alerts, health checks

Revision ID: 3b1e9c2d7f40
Revises:
Create Date: 2026-10-18 09:30:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b1e9c2d7f40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(bind, name: str) -> bool:
    insp = sa.inspect(bind)
    return name in insp.get_table_names()


def _index_exists(bind, table: str, name: str) -> bool:
    insp = sa.inspect(bind)
    for ix in insp.get_indexes(table_name=table):
        if ix.get("name") in {name, op.f(name)}:
            return True
    return False


def _ensure_index(bind, table: str, name: str, cols) -> None:
    if not _index_exists(bind, table, name):
        op.create_index(op.f(name), table, cols, unique=False)


def _ts(name: str, nullable: bool = False):
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    """Create the four monitoring tables (idempotent)."""
    bind = op.get_bind()

    # ---- METRICS ----
    if not _table_exists(bind, "monitoring_metrics"):
        op.create_table(
            "monitoring_metrics",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("metric_name", sa.String(length=255), nullable=False),
            sa.Column("metric_value", sa.Float, nullable=False),
            sa.Column("metric_type", sa.String(length=16), nullable=False, server_default="gauge"),
            sa.Column("labels", sa.JSON, nullable=False),
            _ts("timestamp"),
            _ts("created_at"),
        )
    _ensure_index(bind, "monitoring_metrics", "ix_monitoring_metrics_user_id", ["user_id"])
    _ensure_index(bind, "monitoring_metrics", "ix_monitoring_metrics_metric_name", ["metric_name"])
    _ensure_index(bind, "monitoring_metrics", "ix_monitoring_metrics_user_name_ts",
                  ["user_id", "metric_name", "timestamp"])

    # ---- LOGS ----
    if not _table_exists(bind, "monitoring_logs"):
        op.create_table(
            "monitoring_logs",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("level", sa.String(length=8), nullable=False),       # debug|info|warn|error|fatal
            sa.Column("message", sa.Text, nullable=False),
            sa.Column("service", sa.String(length=255), nullable=False),
            sa.Column("context", sa.JSON, nullable=False),
            sa.Column("trace_id", sa.String(length=64), nullable=True),
            sa.Column("span_id", sa.String(length=64), nullable=True),
            _ts("timestamp"),
            _ts("created_at"),
        )
    for col in ("user_id", "level", "service", "timestamp"):
        _ensure_index(bind, "monitoring_logs", f"ix_monitoring_logs_{col}", [col])

    # ---- ALERTS ----
    if not _table_exists(bind, "monitoring_alerts"):
        op.create_table(
            "monitoring_alerts",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("alert_name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text, nullable=True),
            sa.Column("severity", sa.String(length=16), nullable=False),   # low|medium|high|critical
            sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
            sa.Column("condition", sa.JSON, nullable=False),
            sa.Column("threshold_value", sa.Float, nullable=False),
            sa.Column("current_value", sa.Float, nullable=False),
            _ts("triggered_at"),
            _ts("resolved_at", nullable=True),
            sa.Column("notification_channels", sa.JSON, nullable=False),
            _ts("created_at"),
            _ts("updated_at"),
        )
    for col in ("user_id", "severity", "status", "triggered_at"):
        _ensure_index(bind, "monitoring_alerts", f"ix_monitoring_alerts_{col}", [col])

    # ---- HEALTH CHECKS ----
    if not _table_exists(bind, "monitoring_health_checks"):
        op.create_table(
            "monitoring_health_checks",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("service_name", sa.String(length=255), nullable=False),
            sa.Column("endpoint", sa.String(length=1000), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="healthy"),
            sa.Column("response_time", sa.Float, nullable=False, server_default="0"),
            _ts("last_check"),
            sa.Column("error_message", sa.Text, nullable=True),
            sa.Column("metadata", sa.JSON, nullable=False),
            _ts("created_at"),
            _ts("updated_at"),
            sa.UniqueConstraint("service_name", "user_id", name="uq_monitoring_health_checks_service_user"),
        )
    _ensure_index(bind, "monitoring_health_checks", "ix_monitoring_health_checks_user_id", ["user_id"])


def downgrade() -> None:
    """Drop the same objects safely."""
    for table in ("monitoring_health_checks", "monitoring_alerts", "monitoring_logs", "monitoring_metrics"):
        op.execute(f"DROP TABLE IF EXISTS {table}")
