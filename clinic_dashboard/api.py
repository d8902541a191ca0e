import logging
from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import httpx
from pydantic import BaseModel, ValidationError
from .client import AuthenticationError, Credentials, DataSource
from .messages import InvalidPhoneError
from .models import (
    AppointmentFilter, AppointmentSortField, BirthdayFilter, BirthdaySortField,
    SendAction, SortSpec, ViewMode,
)
from .session import DashboardSession

logger = logging.getLogger(__name__)

class LoginRequest(BaseModel):
    email: str
    password: str

class LoginResponse(BaseModel):
    token: str

# The bearer token is the upstream credential; it is forwarded, never stored globally
auth_scheme = HTTPBearer(auto_error=False)

app = FastAPI(title="Clinic Dashboard Service")
app.state.sessions = {}

def get_data_source() -> DataSource:
    return DataSource()

def require_credentials(credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)) -> Credentials:
    """Extract the bearer token from the Authorization header"""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return Credentials(token=credentials.credentials)

def get_session(
    request: Request,
    credentials: Credentials = Depends(require_credentials),
    source: DataSource = Depends(get_data_source),
) -> DashboardSession:
    """Existing session for the token, or a fresh one that is kept only after a successful fetch"""
    session = request.app.state.sessions.get(credentials.token)
    if session is None:
        session = DashboardSession(source, credentials)
    return session

def _remember(request: Request, session: DashboardSession, error: str | None) -> None:
    if error is None:
        request.app.state.sessions[session.credentials.token] = session

async def _load_appointments(request: Request, session: DashboardSession, force: bool = False) -> None:
    if force or session.appointments is None:
        await session.refresh_appointments()
    _remember(request, session, session.appointments_error)

async def _load_birthdays(request: Request, session: DashboardSession, force: bool = False) -> None:
    if force or session.birthdays is None:
        await session.refresh_birthdays()
    _remember(request, session, session.birthdays_error)

def _build_filter(model, **values):
    try:
        return model(**values)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc

def _send_action(build, row_id: int) -> SendAction:
    try:
        return build(row_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No record with row {row_id}")
    except InvalidPhoneError as exc:
        # distinct from 404 so the UI can tell the user the number is unusable
        raise HTTPException(status_code=409, detail=str(exc))

@app.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, source: DataSource = Depends(get_data_source)):
    try:
        credentials = await source.login(req.email, req.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    except httpx.HTTPError as exc:
        logger.error("login upstream failure: %s", exc)
        raise HTTPException(status_code=502, detail="Login service unavailable")
    return LoginResponse(token=credentials.token)

@app.post("/logout", status_code=204)
async def logout(request: Request, credentials: Credentials = Depends(require_credentials)):
    """Drop the in-memory state for this token; the next request starts unloaded."""
    request.app.state.sessions.pop(credentials.token, None)
    return None

# Appointments ---------------------------------------------------------------

@app.get("/appointments")
async def list_appointments(
    request: Request,
    search: str = Query("", description="Case-insensitive match on patient, doctor or activity"),
    date: Optional[str] = Query(None, description="Exact date as shown in the list"),
    doctor: Optional[str] = Query(None),
    activity: Optional[str] = Query(None),
    phone_valid: Optional[str] = Query(None, description="VERDADERO or FALSO"),
    view: ViewMode = Query(ViewMode.CARDS),
    session: DashboardSession = Depends(get_session),
):
    spec = _build_filter(
        AppointmentFilter, search=search, date=date, doctor=doctor, activity=activity, phone_valid=phone_valid,
    )
    await _load_appointments(request, session)
    return {
        "view": session.appointment_view(spec, view),
        "options": session.appointment_options(),
        "sort": session.appointment_sort,
        "error": session.appointments_error,
    }

@app.post("/appointments/refresh")
async def refresh_appointments(request: Request, session: DashboardSession = Depends(get_session)):
    await _load_appointments(request, session, force=True)
    return {"count": len(session.appointments), "error": session.appointments_error}

@app.post("/appointments/sort/{field}", response_model=SortSpec)
async def sort_appointments(field: AppointmentSortField, request: Request, session: DashboardSession = Depends(get_session)):
    """Same field flips the direction, a new field starts ascending."""
    await _load_appointments(request, session)
    return session.select_appointment_sort(field)

@app.get("/appointments/{row_id}/reminder", response_model=SendAction)
async def appointment_reminder(row_id: int, request: Request, session: DashboardSession = Depends(get_session)):
    await _load_appointments(request, session)
    return _send_action(session.appointment_reminder, row_id)

# Birthdays ------------------------------------------------------------------

@app.get("/birthdays")
async def list_birthdays(
    request: Request,
    search: str = Query("", description="Case-insensitive match on patient name"),
    month: Optional[str] = Query(None, description="1-12"),
    day: Optional[str] = Query(None),
    gender: Optional[str] = Query(None),
    phone_valid: Optional[str] = Query(None, description="VERDADERO or FALSO"),
    session: DashboardSession = Depends(get_session),
):
    spec = _build_filter(
        BirthdayFilter, search=search, month=month, day=day, gender=gender, phone_valid=phone_valid,
    )
    await _load_birthdays(request, session)
    return {
        "view": session.birthday_view(spec),
        "options": session.birthday_options(),
        "sort": session.birthday_sort,
        "error": session.birthdays_error,
    }

@app.post("/birthdays/refresh")
async def refresh_birthdays(request: Request, session: DashboardSession = Depends(get_session)):
    await _load_birthdays(request, session, force=True)
    return {"count": len(session.birthdays), "error": session.birthdays_error}

@app.post("/birthdays/sort/{field}", response_model=SortSpec)
async def sort_birthdays(field: BirthdaySortField, request: Request, session: DashboardSession = Depends(get_session)):
    await _load_birthdays(request, session)
    return session.select_birthday_sort(field)

@app.get("/birthdays/{row_id}/greeting", response_model=SendAction)
async def birthday_greeting(row_id: int, request: Request, session: DashboardSession = Depends(get_session)):
    await _load_birthdays(request, session)
    return _send_action(session.birthday_greeting, row_id)
