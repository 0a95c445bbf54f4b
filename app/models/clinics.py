"""Clinic directory tables: clinics, operating hours, staff and services."""

from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)

metadata = MetaData()

clinics = Table(
    "clinics",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("slug", String(80), nullable=False, unique=True),
    Column("name", Text, nullable=False),
    Column("timezone", String(64), nullable=False),
    # Booking rules
    Column("lead_time_minutes", Integer, nullable=False, server_default=text("60")),
    Column("max_advance_days", Integer, nullable=False, server_default=text("30")),
    Column("slot_step_minutes", Integer, nullable=False, server_default=text("15")),
    Column("allow_double_booking", Boolean, nullable=False, server_default=text("false")),
)

clinic_operating_hours = Table(
    "clinic_operating_hours",
    metadata,
    Column("clinic_id", String(64), nullable=False),
    Column("day_of_week", SmallInteger, nullable=False),  # 0=Sunday, 6=Saturday
    Column("open_time", String(5), nullable=False),
    Column("close_time", String(5), nullable=False),
    Column("is_closed", Boolean, nullable=False, server_default=text("false")),
    UniqueConstraint("clinic_id", "day_of_week", name="unique_day_per_clinic"),
)

clinic_staff = Table(
    "clinic_staff",
    metadata,
    Column("clinic_id", String(64), nullable=False),
    Column("staff_id", String(120), nullable=False),
    Column("position", Integer, nullable=False, server_default=text("0")),
    UniqueConstraint("clinic_id", "staff_id", name="unique_staff_per_clinic"),
)

clinic_services = Table(
    "clinic_services",
    metadata,
    Column("id", String(120), primary_key=True),
    Column("clinic_id", String(64), nullable=False),
    Column("name", Text, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
)
