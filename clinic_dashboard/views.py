"""Filtering, sorting and agenda grouping over the loaded records.

Every function here is pure: inputs are never mutated and the same arguments always
produce the same output.
"""
import re
from collections.abc import Callable, Sequence
from datetime import date, datetime, time
from typing import Any

from .models import (
    DEFAULT_APPOINTMENT_SORT,
    DEFAULT_BIRTHDAY_SORT,
    AgendaGroup,
    Appointment,
    AppointmentFilter,
    AppointmentSortField,
    AppointmentView,
    Birthday,
    BirthdayFilter,
    BirthdaySortField,
    BirthdayView,
    PhoneValidity,
    SortSpec,
    ViewMode,
    ViewSummary,
)
from .periods import partition_by_period

# ISO first, then the day-first formats the spreadsheet export uses
_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y", "%Y/%m/%d")
_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M:%S %p", "%I:%M%p")
_MERIDIEM = re.compile(r"\s*([ap])\.?\s*m\.?\s*$", re.IGNORECASE)


def parse_date(value: str) -> date | None:
    text = (value or "").strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_time(value: str) -> time | None:
    text = _MERIDIEM.sub(lambda m: f" {m.group(1).upper()}M", (value or "").strip())
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def appointment_instant(appointment: Appointment) -> datetime | None:
    """Date and time as one comparable instant, or None if either part is unreadable."""
    day = parse_date(appointment.date)
    moment = parse_time(appointment.time)
    if day is None or moment is None:
        return None
    return datetime.combine(day, moment)


def _stable_sort(records: Sequence, key: Callable[[Any], Any], descending: bool) -> list:
    # records without a usable key go last in either direction, in input order
    keyed = [(key(r), r) for r in records]
    ordered = [r for k, r in sorted(
        ((k, r) for k, r in keyed if k is not None),
        key=lambda kr: kr[0],
        reverse=descending,
    )]
    return ordered + [r for k, r in keyed if k is None]


# Filtering ------------------------------------------------------------------

def _matches_search(term: str, fields: Sequence[str]) -> bool:
    if not term:
        return True
    term = term.lower()
    return any(term in (f or "").lower() for f in fields)


def _matches_phone(record, wanted: PhoneValidity | None) -> bool:
    return wanted is None or record.phone_valid is wanted


def filter_appointments(records: Sequence[Appointment], spec: AppointmentFilter) -> list[Appointment]:
    return [
        r for r in records
        if _matches_search(spec.search, (r.patient_name, r.doctor_name, r.activity))
        and (spec.date is None or r.date == spec.date)
        and (spec.doctor is None or r.doctor_name == spec.doctor)
        and (spec.activity is None or r.activity == spec.activity)
        and _matches_phone(r, spec.phone_valid)
    ]


def filter_birthdays(records: Sequence[Birthday], spec: BirthdayFilter) -> list[Birthday]:
    return [
        r for r in records
        if _matches_search(spec.search, (r.patient_name,))
        and (spec.month is None or r.month == spec.month)
        and (spec.day is None or r.day == spec.day)
        and (spec.gender is None or r.gender == spec.gender)
        and _matches_phone(r, spec.phone_valid)
    ]


# Sorting --------------------------------------------------------------------

_APPOINTMENT_KEYS: dict[AppointmentSortField, Callable[[Appointment], Any]] = {
    AppointmentSortField.DATE: appointment_instant,
    AppointmentSortField.PATIENT: lambda r: r.patient_name,
    AppointmentSortField.DOCTOR: lambda r: r.doctor_name,
    AppointmentSortField.ACTIVITY: lambda r: r.activity,
}

_BIRTHDAY_KEYS: dict[BirthdaySortField, Callable[[Birthday], Any]] = {
    BirthdaySortField.BIRTHDAY: lambda r: (r.month, r.day),
    BirthdaySortField.PATIENT: lambda r: r.patient_name,
    BirthdaySortField.MONTH: lambda r: r.month,
    BirthdaySortField.DAY: lambda r: r.day,
    BirthdaySortField.GENDER: lambda r: r.gender,
}


def _sort_field(kind, spec: SortSpec):
    try:
        return kind(spec.field.value)
    except ValueError:
        raise TypeError(f"{spec.field.value!r} is not a {kind.__name__} sort field") from None


def sort_appointments(records: Sequence[Appointment], spec: SortSpec = DEFAULT_APPOINTMENT_SORT) -> list[Appointment]:
    key = _APPOINTMENT_KEYS[_sort_field(AppointmentSortField, spec)]
    return _stable_sort(records, key, spec.descending)


def sort_birthdays(records: Sequence[Birthday], spec: SortSpec = DEFAULT_BIRTHDAY_SORT) -> list[Birthday]:
    key = _BIRTHDAY_KEYS[_sort_field(BirthdaySortField, spec)]
    return _stable_sort(records, key, spec.descending)


def group_agenda(records: Sequence[Appointment]) -> list[AgendaGroup]:
    """Group by exact date in first-seen order; each day runs by time ascending."""
    by_date: dict[str, list[Appointment]] = {}
    for record in records:
        by_date.setdefault(record.date, []).append(record)
    return [
        AgendaGroup(date=day, appointments=_stable_sort(members, lambda r: parse_time(r.time), False))
        for day, members in by_date.items()
    ]


# Views ----------------------------------------------------------------------

def _summary(records: Sequence, shown: Sequence, active_filters: int, **extra) -> ViewSummary:
    valid = sum(1 for r in shown if r.phone_valid is PhoneValidity.VALID)
    return ViewSummary(
        total=len(records),
        shown=len(shown),
        valid_phones=valid,
        invalid_phones=len(shown) - valid,
        active_filters=active_filters,
        **extra,
    )


def compute_appointment_view(
    records: Sequence[Appointment],
    filter_spec: AppointmentFilter | None = None,
    sort_spec: SortSpec | None = None,
    mode: ViewMode = ViewMode.CARDS,
) -> AppointmentView:
    filter_spec = filter_spec or AppointmentFilter()
    shown = sort_appointments(filter_appointments(records, filter_spec), sort_spec or DEFAULT_APPOINTMENT_SORT)
    return AppointmentView(
        mode=mode,
        appointments=shown,
        groups=group_agenda(shown) if mode is ViewMode.AGENDA else None,
        summary=_summary(records, shown, filter_spec.active_count),
    )


def compute_birthday_view(
    records: Sequence[Birthday],
    current_month: int,
    filter_spec: BirthdayFilter | None = None,
    sort_spec: SortSpec | None = None,
) -> BirthdayView:
    filter_spec = filter_spec or BirthdayFilter()
    shown = sort_birthdays(filter_birthdays(records, filter_spec), sort_spec or DEFAULT_BIRTHDAY_SORT)
    this_month, _ = partition_by_period(shown, current_month)
    return BirthdayView(
        birthdays=shown,
        current_period=this_month,
        summary=_summary(records, shown, filter_spec.active_count, current_period=len(this_month)),
    )
