"""Typed tenant context passed into every staff-facing call."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ClinicContext:
    """The clinic a request acts on behalf of."""

    clinic_id: str
