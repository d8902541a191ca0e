"""Async client for the clinic webhook API (appointments and birthdays).
The bearer token is passed in on every call; nothing is cached at module level.
"""
from __future__ import annotations
import logging
import os
from typing import Any, TypeVar
import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from .models import Appointment, Birthday

load_dotenv()

logger = logging.getLogger(__name__)

_BASE_URL = os.getenv("CLINIC_API_BASE_URL", "http://localhost:5678/webhook/altika")
_TIMEOUT = float(os.getenv("CLINIC_API_TIMEOUT", "15"))

RecordT = TypeVar("RecordT", bound=BaseModel)


class AuthenticationError(Exception):
    """Login was rejected or the upstream reply carried no token."""


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str = Field(repr=False)

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Accept": "application/json"}


class DataSource:
    """Reads flat record lists from the upstream API and validates them into models."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or _BASE_URL).rstrip("/")
        self.timeout = timeout or _TIMEOUT

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(http2=True, timeout=self.timeout)

    async def login(self, email: str, password: str) -> Credentials:
        """Exchange email/password for a bearer token. Upstream replies ``[{"token": ...}]``."""
        async with self._client() as client:
            resp = await client.post(f"{self.base_url}/login", json={"email": email, "password": password})
        if resp.status_code in (401, 403):
            raise AuthenticationError(f"login rejected ({resp.status_code})")
        resp.raise_for_status()
        data = _json(resp)

        first = data[0] if isinstance(data, list) and data else data
        token = first.get("token") if isinstance(first, dict) else None
        if not token:
            raise AuthenticationError("token missing from login response")
        return Credentials(token=token)

    async def fetch_appointments(self, credentials: Credentials) -> list[Appointment]:
        return await self._fetch("citas", credentials, Appointment)

    async def fetch_birthdays(self, credentials: Credentials) -> list[Birthday]:
        return await self._fetch("cumpleaños", credentials, Birthday)

    async def _fetch(self, path: str, credentials: Credentials, model: type[RecordT]) -> list[RecordT]:
        async with self._client() as client:
            resp = await client.get(f"{self.base_url}/{path}", headers=credentials.headers())
            resp.raise_for_status()
            payload = _json(resp)

        if not isinstance(payload, list):
            logger.warning("expected a list from /%s, got %s", path, type(payload).__name__)
            return []
        return _parse_rows(payload, model, path)


def _json(resp: httpx.Response) -> Any:
    # the webhook host answers some failures with a 200 HTML page
    try:
        return resp.json()
    except ValueError as exc:
        raise httpx.DecodingError(f"non-JSON body from {resp.request.url.path}", request=resp.request) from exc


def _parse_rows(rows: list[Any], model: type[RecordT], source: str) -> list[RecordT]:
    records: list[RecordT] = []
    for index, row in enumerate(rows):
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("skipping %s row %d: %d validation error(s)", source, index, exc.error_count())
    return records
