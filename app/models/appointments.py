"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
)

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", String(64), primary_key=True),
    # Ownership / references
    Column("clinic_id", String(64), nullable=False),
    Column("patient_id", String(64), nullable=False),
    Column("staff_id", String(120), nullable=False),
    Column("service_id", String(120), nullable=False),
    # Half-open interval [start_time, end_time)
    Column("start_time", DateTime(timezone=True), nullable=False),
    Column("end_time", DateTime(timezone=True), nullable=False),
    # Status management
    Column("status", String(16), nullable=False, server_default="SCHEDULED"),
    Column("source", String(16), nullable=False, server_default="STAFF"),
    Column("cancellation_reason", Text, nullable=True),
    # Metadata
    Column("notes", Text, nullable=True),
    Column("patient_email", String(255), nullable=True),
    Column("booking_id", String(64), nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Soft delete (healthcare compliance)
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('SCHEDULED', 'CONFIRMED', 'CANCELLED', 'NO_SHOW', 'COMPLETED')",
        name="appointments_status_check",
    ),
    CheckConstraint("source IN ('STAFF', 'PUBLIC')", name="appointments_source_check"),
    CheckConstraint("end_time > start_time", name="appointments_interval_check"),
    Index("idx_appointments_staff_window", "clinic_id", "staff_id", "start_time"),
)
