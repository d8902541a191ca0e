from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TRUTHY_FLAGS = {"verdadero", "true", "1", "si", "sí"}


class PhoneValidity(str, Enum):
    VALID = "VERDADERO"
    INVALID = "FALSO"

    @classmethod
    def coerce(cls, value: Any) -> "PhoneValidity":
        """Map the upstream spreadsheet flag to a validity state; unknown means invalid."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.VALID if value else cls.INVALID
        if value is None:
            return cls.INVALID
        return cls.VALID if str(value).strip().lower() in _TRUTHY_FLAGS else cls.INVALID


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    row_id: int = Field(validation_alias="fila_original_excel")
    patient_name: str = Field(validation_alias="Paciente")
    phone: str = Field("", validation_alias="Celular")
    phone_valid: PhoneValidity = Field(PhoneValidity.INVALID, validation_alias="Celular_valido")

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_as_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("phone_valid", mode="before")
    @classmethod
    def _coerce_flag(cls, v):
        return PhoneValidity.coerce(v)

    @property
    def can_message(self) -> bool:
        return self.phone_valid is PhoneValidity.VALID


class Appointment(_Record):
    doctor_name: str = Field(validation_alias="Odontologo")
    activity: str = Field(validation_alias="Actividad")
    date: str = Field(validation_alias="Fecha")  # opaque, ISO or dd/mm/yyyy as supplied
    time: str = Field(validation_alias="Hora")


class Birthday(_Record):
    gender: str = Field("", validation_alias="Genero")
    display_date: str = Field(validation_alias="Cumple")
    month: int = Field(validation_alias="Mes")
    day: int = Field(validation_alias="Dia")

    @field_validator("gender", mode="before")
    @classmethod
    def _gender_as_text(cls, v):
        return "" if v is None else str(v)


# Filter / sort / view specifications ---------------------------------------

class _Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    search: str = ""
    phone_valid: PhoneValidity | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, v, info):
        # the UI sends "" for "all"; search keeps "" as its own blank value
        if isinstance(v, str) and not v.strip():
            return "" if info.field_name == "search" else None
        return v

    @property
    def active_count(self) -> int:
        return sum(
            1 for _, value in self
            if value is not None and value != ""
        )


class AppointmentFilter(_Filter):
    date: str | None = None
    doctor: str | None = None
    activity: str | None = None


class BirthdayFilter(_Filter):
    month: int | None = None
    day: int | None = None
    gender: str | None = None


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class AppointmentSortField(str, Enum):
    DATE = "date"  # date + time as one instant
    PATIENT = "patient"
    DOCTOR = "doctor"
    ACTIVITY = "activity"


class BirthdaySortField(str, Enum):
    BIRTHDAY = "birthday"  # (month, day)
    PATIENT = "patient"
    MONTH = "month"
    DAY = "day"
    GENDER = "gender"


class SortSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: AppointmentSortField | BirthdaySortField
    direction: SortDirection = SortDirection.ASC

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC

    def select(self, field: AppointmentSortField | BirthdaySortField) -> "SortSpec":
        """Re-selecting the current field flips direction; a new field starts ascending."""
        if field == self.field:
            flipped = SortDirection.ASC if self.descending else SortDirection.DESC
            return SortSpec(field=field, direction=flipped)
        return SortSpec(field=field)


DEFAULT_APPOINTMENT_SORT = SortSpec(field=AppointmentSortField.DATE)
DEFAULT_BIRTHDAY_SORT = SortSpec(field=BirthdaySortField.BIRTHDAY)


class ViewMode(str, Enum):
    CARDS = "cards"
    TABLE = "table"
    AGENDA = "agenda"


# Derived results ------------------------------------------------------------

class AppointmentOptions(BaseModel):
    dates: tuple[str, ...] = ()
    doctors: tuple[str, ...] = ()
    activities: tuple[str, ...] = ()


class BirthdayOptions(BaseModel):
    months: tuple[int, ...] = ()
    days: tuple[int, ...] = ()
    genders: tuple[str, ...] = ()


class ViewSummary(BaseModel):
    total: int
    shown: int
    valid_phones: int
    invalid_phones: int
    active_filters: int
    current_period: int | None = None  # birthdays only


class AgendaGroup(BaseModel):
    date: str
    appointments: list[Appointment]


class AppointmentView(BaseModel):
    mode: ViewMode
    appointments: list[Appointment]
    groups: list[AgendaGroup] | None = None  # only for ViewMode.AGENDA
    summary: ViewSummary


class BirthdayView(BaseModel):
    birthdays: list[Birthday]
    current_period: list[Birthday]
    summary: ViewSummary


class SendAction(BaseModel):
    """A ready-to-open messaging deep link for one record."""
    row_id: int
    phone: str
    message: str
    url: str
