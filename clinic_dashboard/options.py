"""Selector choices derived from the records currently loaded."""
from collections.abc import Iterable, Sequence

from .models import Appointment, AppointmentOptions, Birthday, BirthdayOptions


def _distinct(values: Iterable) -> tuple:
    return tuple(sorted(set(values)))


def derive_appointment_options(records: Sequence[Appointment]) -> AppointmentOptions:
    return AppointmentOptions(
        dates=_distinct(r.date for r in records),
        doctors=_distinct(r.doctor_name for r in records),
        activities=_distinct(r.activity for r in records),
    )


def derive_birthday_options(records: Sequence[Birthday]) -> BirthdayOptions:
    """Months and days sort numerically, genders lexicographically."""
    return BirthdayOptions(
        months=_distinct(r.month for r in records),
        days=_distinct(r.day for r in records),
        genders=_distinct(r.gender for r in records),
    )
