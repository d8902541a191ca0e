"""Reminder / greeting text and WhatsApp deep links."""
import os
import re
from urllib.parse import quote

from dotenv import load_dotenv

from .models import Appointment, Birthday, SendAction
from .sanitizer import Sanitizer

load_dotenv()

_CLINIC_NAME = os.getenv("CLINIC_NAME", "Altika Studio Dental")
_SENDER_NAME = os.getenv("CLINIC_SENDER_NAME", "Juliana")
_LINK_BASE = os.getenv("MESSAGING_LINK_BASE", "https://api.whatsapp.com/send")

# characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"
_NON_DIGITS = re.compile(r"[^0-9]")

_REMINDER_TEMPLATE = (
    "¡Hola {patient}! 👋 Soy {sender} de {clinic}.",
    "Recordatorio de su cita para el {date} a las {time} ({activity}).",
    "Por favor confirme su asistencia. ¡Feliz día! 🙂",
)
_GREETING_TEMPLATE = (
    "¡Feliz cumpleaños, {salutation} {patient}! 🎉🎂",
    "En {clinic} te deseamos un día lleno de sonrisas. 🙂",
    "Te obsequiamos un 10% de descuento en tu próxima cita durante este mes.",
    "Con cariño,\nEquipo {clinic}",
)


class InvalidPhoneError(Exception):
    """Raised when a message is requested for a record flagged invalid or with no phone digits."""

    def __init__(self, row_id: int):
        super().__init__(f"row {row_id} has no valid phone number")
        self.row_id = row_id


def normalize_phone(phone: str) -> str:
    """Keep only the digits (drops spaces, dashes, parentheses and a leading +)."""
    return _NON_DIGITS.sub("", phone or "")


def salutation_for(gender: str | None) -> str:
    # single literal match; other spellings fall back to the masculine form
    return "Querida" if (gender or "").strip().lower() == "femenino" else "Querido"


class MessageComposer:
    def __init__(
        self,
        clinic_name: str | None = None,
        sender_name: str | None = None,
        sanitizer: Sanitizer | None = None,
        link_base: str | None = None,
    ):
        self.clinic_name = clinic_name or _CLINIC_NAME
        self.sender_name = sender_name or _SENDER_NAME
        self.sanitizer = sanitizer or Sanitizer()
        self.link_base = link_base or _LINK_BASE

    def compose_appointment_reminder(self, patient: str, date: str, time: str, activity: str) -> str:
        raw = "\n\n".join(_REMINDER_TEMPLATE).format(
            patient=patient,
            sender=self.sender_name,
            clinic=self.clinic_name,
            date=date,
            time=time,
            activity=activity,
        )
        return self.sanitizer.sanitize(raw)

    def compose_birthday_greeting(self, patient: str, gender: str | None) -> str:
        raw = "\n\n".join(_GREETING_TEMPLATE).format(
            salutation=salutation_for(gender),
            patient=patient,
            clinic=self.clinic_name,
        )
        return self.sanitizer.sanitize(raw)

    def build_deep_link(self, phone: str, message: str) -> str:
        encoded = quote(self.sanitizer.sanitize(message), safe=_URI_SAFE)
        return f"{self.link_base}?phone={normalize_phone(phone)}&text={encoded}"

    def appointment_reminder(self, appointment: Appointment) -> SendAction:
        """Build the reminder link; refuses invalid-flagged or digit-less phones."""
        if not appointment.can_message or not normalize_phone(appointment.phone):
            raise InvalidPhoneError(appointment.row_id)
        message = self.compose_appointment_reminder(
            appointment.patient_name, appointment.date, appointment.time, appointment.activity
        )
        return self._action(appointment.row_id, appointment.phone, message)

    def birthday_greeting(self, birthday: Birthday) -> SendAction:
        if not birthday.can_message or not normalize_phone(birthday.phone):
            raise InvalidPhoneError(birthday.row_id)
        message = self.compose_birthday_greeting(birthday.patient_name, birthday.gender)
        return self._action(birthday.row_id, birthday.phone, message)

    def _action(self, row_id: int, phone: str, message: str) -> SendAction:
        return SendAction(
            row_id=row_id,
            phone=normalize_phone(phone),
            message=message,
            url=self.build_deep_link(phone, message),
        )
