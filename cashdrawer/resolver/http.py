"""Backend HTTP (requests) contra la API de turnos de este servicio."""
from __future__ import annotations

from typing import Any, Dict, Optional

import pydantic
import requests
from starlette.concurrency import run_in_threadpool

from cashdrawer.core.config import settings
from cashdrawer.core.errors import (
    NotFoundError,
    PersistenceUnavailable,
    ProbeFailure,
    ShiftClosedError,
    ValidationError,
)
from cashdrawer.core.schemas import (
    ClosedShiftSummary,
    MovementOut,
    SectionOut,
    ShiftOpenOut,
    ShiftOut,
    ShiftPage,
)
from cashdrawer.resolver.backend import ShiftBackend


def _json(r: requests.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return {"detail": r.text}


def _decode(path: str, parse, js: Any) -> Any:
    try:
        return parse(js)
    except (pydantic.ValidationError, AttributeError, TypeError) as exc:
        raise ProbeFailure(f"GET {path}: unexpected payload ({exc.__class__.__name__})")


def _write_error(r: requests.Response, path: str) -> Exception:
    js = _json(r)
    detail = js.get("detail") if isinstance(js, dict) else None
    detail = str(detail or f"{r.status_code} on {path}")
    if r.status_code == 422:
        return ValidationError(detail)
    if r.status_code == 404:
        return NotFoundError(detail)
    if r.status_code == 409 and isinstance(js, dict) and js.get("code") == ShiftClosedError.code:
        return ShiftClosedError(path.split("/")[2])
    return PersistenceUnavailable(detail)


class HttpShiftBackend(ShiftBackend):
    def __init__(
        self,
        actor_id: str,
        branch_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.actor_id = actor_id
        self.branch_id = branch_id
        self.base_url = (base_url or settings.service_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._http = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        h = {"X-Actor-Id": self.actor_id}
        if self.branch_id:
            h["X-Branch-Id"] = self.branch_id
        return h

    def _request(self, method: str, path: str, params=None, body=None) -> requests.Response:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        return self._http.request(
            method,
            f"{self.base_url}{path}",
            params=params,
            json=body,
            headers=self._headers(),
            timeout=self.timeout,
        )

    async def _get(self, path: str, params=None, none_on_404: bool = False) -> Any:
        try:
            r = await run_in_threadpool(self._request, "GET", path, params)
        except requests.RequestException as exc:
            raise ProbeFailure(f"GET {path} failed: {exc!r}")
        if r.status_code == 404 and none_on_404:
            return None
        if r.status_code >= 400:
            raise ProbeFailure(f"GET {path} -> {r.status_code}")
        return _json(r)

    async def _send(self, method: str, path: str, body=None, params=None) -> Any:
        try:
            r = await run_in_threadpool(self._request, method, path, params, body)
        except requests.RequestException as exc:
            raise PersistenceUnavailable(f"{method} {path} failed: {exc!r}")
        if r.status_code >= 400:
            raise _write_error(r, path)
        return _json(r)

    async def _shift(self, path: str, params=None) -> Optional[ShiftOut]:
        js = await self._get(path, params, none_on_404=True)
        return _decode(path, ShiftOut.model_validate, js) if js else None

    async def get_shift(self, shift_id):
        return await self._shift(f"/shifts/{shift_id}")

    async def current_for_actor(self):
        return await self._shift("/shifts/current/me")

    async def current(self, branch_id=None, section_id=None):
        return await self._shift("/shifts/current", {"branch_id": branch_id, "section_id": section_id})

    async def current_for_branch(self, branch_id):
        return await self._shift("/shifts/current/branch", {"branch_id": branch_id})

    async def list_shifts(self, branch_id, section_id=None, status="ALL", limit=50, offset=0):
        js = await self._get(
            "/shifts/list",
            {"branch_id": branch_id, "section_id": section_id, "status": status, "limit": limit, "offset": offset},
        )
        return _decode("/shifts/list", ShiftPage.model_validate, js)

    async def list_sections(self, branch_id):
        js = await self._get("/sections", {"branch_id": branch_id})
        return _decode("/sections", lambda rows: [SectionOut.model_validate(s) for s in rows or []], js)

    async def get_pref(self, key, branch_id):
        js = await self._get(f"/prefs/{key}", {"branch_id": branch_id})
        return _decode(f"/prefs/{key}", lambda body: (body or {}).get("value"), js)

    async def set_pref(self, key, branch_id, value):
        await self._send("PUT", f"/prefs/{key}", {"value": value}, params={"branch_id": branch_id})

    async def open_shift(self, branch_id, section_id, opening_cash):
        js = await self._send(
            "POST",
            "/shifts/open",
            {"branch_id": branch_id, "section_id": section_id, "opening_cash": str(opening_cash)},
        )
        return ShiftOpenOut.model_validate(js)

    async def close_shift(self, shift_id, closing_cash):
        js = await self._send("PUT", f"/shifts/{shift_id}/close", {"closing_cash": str(closing_cash)})
        return ClosedShiftSummary.model_validate(js)

    async def record_movement(self, shift_id, type, amount, note=None):
        js = await self._send(
            "POST", f"/shifts/{shift_id}/movements", {"type": type, "amount": str(amount), "note": note}
        )
        return MovementOut.model_validate(js)

    async def list_movements(self, shift_id):
        try:
            r = await run_in_threadpool(self._request, "GET", f"/shifts/{shift_id}/movements")
        except requests.RequestException as exc:
            raise PersistenceUnavailable(f"GET movements failed: {exc!r}")
        if r.status_code >= 400:
            raise _write_error(r, f"/shifts/{shift_id}/movements")
        return [MovementOut.model_validate(m) for m in _json(r)]
