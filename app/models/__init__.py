"""Database models."""

from sqlalchemy import MetaData

from app.models.appointments import appointments
from app.models.appointments import metadata as appointments_metadata
from app.models.attendance import attendance_events, patient_attendance_metrics
from app.models.attendance import metadata as attendance_metadata
from app.models.clinics import (
    clinic_operating_hours,
    clinic_services,
    clinic_staff,
    clinics,
)
from app.models.clinics import metadata as clinics_metadata
from app.models.patients import metadata as patients_metadata
from app.models.patients import patients

# Combined metadata for create_all / drop_all
metadata = MetaData()
for _source in (appointments_metadata, attendance_metadata, clinics_metadata, patients_metadata):
    for _table in _source.tables.values():
        _table.to_metadata(metadata)

__all__ = [
    "appointments",
    "attendance_events",
    "clinic_operating_hours",
    "clinic_services",
    "clinic_staff",
    "clinics",
    "metadata",
    "patient_attendance_metrics",
    "patients",
]
