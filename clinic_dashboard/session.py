"""In-memory dashboard state for one signed-in user.

Holds the last fetched record collections and the active sort specs. Collections are
replaced wholesale on refresh; ``None`` means "not loaded yet", ``[]`` means "loaded, empty".
"""
import logging
from collections.abc import Callable
from datetime import date

import httpx

from .client import Credentials, DataSource
from .messages import MessageComposer
from .models import (
    DEFAULT_APPOINTMENT_SORT,
    DEFAULT_BIRTHDAY_SORT,
    Appointment,
    AppointmentFilter,
    AppointmentOptions,
    AppointmentSortField,
    AppointmentView,
    Birthday,
    BirthdayFilter,
    BirthdayOptions,
    BirthdaySortField,
    BirthdayView,
    SendAction,
    SortSpec,
    ViewMode,
)
from .options import derive_appointment_options, derive_birthday_options
from .periods import current_month
from .views import compute_appointment_view, compute_birthday_view

logger = logging.getLogger(__name__)


class DashboardSession:
    def __init__(
        self,
        source: DataSource,
        credentials: Credentials,
        composer: MessageComposer | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.source = source
        self.credentials = credentials
        self.composer = composer or MessageComposer()
        self.clock = clock
        self.appointments: list[Appointment] | None = None
        self.birthdays: list[Birthday] | None = None
        self.appointment_sort: SortSpec = DEFAULT_APPOINTMENT_SORT
        self.birthday_sort: SortSpec = DEFAULT_BIRTHDAY_SORT
        self.appointments_error: str | None = None
        self.birthdays_error: str | None = None

    async def refresh_appointments(self) -> list[Appointment]:
        try:
            self.appointments = await self.source.fetch_appointments(self.credentials)
            self.appointments_error = None
        except httpx.HTTPError as exc:
            # a failed fetch shows as an empty list, same as "no records"
            logger.error("appointment fetch failed: %s", exc)
            self.appointments = []
            self.appointments_error = str(exc)
        return self.appointments

    async def refresh_birthdays(self) -> list[Birthday]:
        try:
            self.birthdays = await self.source.fetch_birthdays(self.credentials)
            self.birthdays_error = None
        except httpx.HTTPError as exc:
            logger.error("birthday fetch failed: %s", exc)
            self.birthdays = []
            self.birthdays_error = str(exc)
        return self.birthdays

    def select_appointment_sort(self, field: AppointmentSortField) -> SortSpec:
        self.appointment_sort = self.appointment_sort.select(field)
        return self.appointment_sort

    def select_birthday_sort(self, field: BirthdaySortField) -> SortSpec:
        self.birthday_sort = self.birthday_sort.select(field)
        return self.birthday_sort

    def appointment_options(self) -> AppointmentOptions:
        return derive_appointment_options(self.appointments or [])

    def birthday_options(self) -> BirthdayOptions:
        return derive_birthday_options(self.birthdays or [])

    def appointment_view(
        self, filter_spec: AppointmentFilter | None = None, mode: ViewMode = ViewMode.CARDS
    ) -> AppointmentView | None:
        if self.appointments is None:
            return None
        return compute_appointment_view(self.appointments, filter_spec, self.appointment_sort, mode)

    def birthday_view(self, filter_spec: BirthdayFilter | None = None) -> BirthdayView | None:
        if self.birthdays is None:
            return None
        return compute_birthday_view(
            self.birthdays, current_month(self.clock()), filter_spec, self.birthday_sort
        )

    def appointment_reminder(self, row_id: int) -> SendAction:
        """Raises KeyError for an unknown row and InvalidPhoneError for a bad phone."""
        return self.composer.appointment_reminder(_by_row(self.appointments, row_id))

    def birthday_greeting(self, row_id: int) -> SendAction:
        return self.composer.birthday_greeting(_by_row(self.birthdays, row_id))


def _by_row(records, row_id: int):
    for record in records or []:
        if record.row_id == row_id:
            return record
    raise KeyError(row_id)
