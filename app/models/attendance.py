"""Patient attendance tables."""

from sqlalchemy import Column, DateTime, Integer, MetaData, PrimaryKeyConstraint, String, Table, text

metadata = MetaData()

patient_attendance_metrics = Table(
    "patient_attendance_metrics",
    metadata,
    Column("clinic_id", String(64), nullable=False),
    Column("patient_id", String(64), nullable=False),
    Column("no_show_count", Integer, nullable=False, server_default=text("0")),
    Column("late_cancel_count", Integer, nullable=False, server_default=text("0")),
    Column("last_no_show_at", DateTime(timezone=True), nullable=True),
    Column("last_late_cancel_at", DateTime(timezone=True), nullable=True),
    PrimaryKeyConstraint("clinic_id", "patient_id"),
)

# One row per (event kind, appointment) already counted
attendance_events = Table(
    "attendance_events",
    metadata,
    Column("kind", String(32), nullable=False),
    Column("appointment_id", String(64), nullable=False),
    PrimaryKeyConstraint("kind", "appointment_id"),
)
