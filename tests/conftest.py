import json, pathlib
import pytest
from clinic_dashboard.models import Appointment, Birthday

FIX = pathlib.Path(__file__).parent / "fixtures"


def appt(row_id, date="2025-03-10", time="09:00", patient="Paciente", doctor="Dr. Ruiz",
         activity="Control", valid="VERDADERO"):
    return Appointment(
        row_id=row_id, patient_name=patient, doctor_name=doctor, activity=activity,
        date=date, time=time, phone="300 000 0000", phone_valid=valid,
    )


def bday(row_id, month=3, day=1, patient="Paciente", gender="Femenino", valid="VERDADERO"):
    return Birthday(
        row_id=row_id, patient_name=patient, gender=gender, display_date=f"{day}/{month}",
        month=month, day=day, phone="300 000 0000", phone_valid=valid,
    )


@pytest.fixture
def appointments():
    rows = json.loads((FIX / "citas.json").read_text(encoding="utf-8"))
    return [Appointment.model_validate(r) for r in rows]


@pytest.fixture
def birthdays():
    rows = json.loads((FIX / "cumpleanos.json").read_text(encoding="utf-8"))
    return [Birthday.model_validate(r) for r in rows[:3]]
