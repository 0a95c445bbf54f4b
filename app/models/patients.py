"""Patients table model."""

from sqlalchemy import Column, MetaData, String, Table, Text, UniqueConstraint

metadata = MetaData()

patients = Table(
    "patients",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("clinic_id", String(64), nullable=False),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    # Lowercased; public bookings upsert on (clinic_id, email)
    Column("email", String(255), nullable=True),
    Column("phone", String(40), nullable=True),
    UniqueConstraint("clinic_id", "email", name="unique_patient_email_per_clinic"),
)
