"""Fixtures compartidos: SQLite temporal por test, app FastAPI y backend falso."""
from __future__ import annotations

import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

# La app a nivel módulo no debe tocar ./cashdrawer.db
os.environ.setdefault(
    "DATABASE_URL", "sqlite:///" + os.path.join(tempfile.gettempdir(), "cashdrawer-test-default.db")
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from cashdrawer import models  # noqa: E402,F401
from cashdrawer.core.errors import ProbeFailure  # noqa: E402
from cashdrawer.core.schemas import SectionOut, ShiftOut, ShiftPage  # noqa: E402
from cashdrawer.db import Base, make_engine, make_session_factory  # noqa: E402
from cashdrawer.main import create_app  # noqa: E402
from cashdrawer.models.sale import SalePayment  # noqa: E402
from cashdrawer.resolver.backend import ShiftBackend  # noqa: E402

BRANCH = "B1"
ACTOR = "cashier-1"


@pytest.fixture
def engine(tmp_path):
    eng = make_engine("sqlite:///" + str(tmp_path / "shifts.db").replace("\\", "/"))
    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def audit_path(tmp_path):
    return str(tmp_path / "audit" / "shifts.jsonl")


@pytest.fixture
def client(engine, audit_path):
    app = create_app(engine=engine, audit_file=audit_path)
    with TestClient(app) as c:
        yield c


def headers(actor: str = ACTOR, branch: Optional[str] = BRANCH) -> Dict[str, str]:
    h = {"X-Actor-Id": actor}
    if branch:
        h["X-Branch-Id"] = branch
    return h


@pytest.fixture
def add_sale(db):
    def _add(shift_id: str, amount, method: str = "cash"):
        db.add(SalePayment(shift_id=shift_id, method=method, amount=Decimal(str(amount))))
        db.commit()

    return _add


def make_shift(
    shift_id: str,
    section_id: str = "S1",
    branch_id: str = BRANCH,
    status: str = "OPEN",
    opened_by: str = ACTOR,
    minutes_ago: int = 0,
) -> ShiftOut:
    opened = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
    return ShiftOut(
        id=shift_id,
        branch_id=branch_id,
        section_id=section_id,
        status=status,
        opened_by=opened_by,
        opened_at=opened,
        closed_at=opened + timedelta(hours=1) if status == "CLOSED" else None,
        opening_cash=Decimal("100.00"),
    )


class FakeBackend(ShiftBackend):
    """Almacén en memoria; cada respuesta es configurable por método."""

    def __init__(self, shifts: Optional[List[ShiftOut]] = None, sections: Optional[List[str]] = None):
        self.shifts: Dict[str, ShiftOut] = {s.id: s for s in shifts or []}
        self.sections = [SectionOut(id=s, branch_id=BRANCH, name=s) for s in sections or []]
        self.prefs: Dict[tuple, Optional[str]] = {}
        self.calls: List[str] = []
        self.failing: set = set()
        self.section_delays: Dict[str, float] = {}
        self.section_gates: Dict[str, asyncio.Event] = {}
        self.actor_results: List[Optional[ShiftOut]] = []

    def _track(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise ProbeFailure(f"{name} unavailable")

    async def get_shift(self, shift_id):
        self._track("get_shift")
        return self.shifts.get(shift_id)

    async def current_for_actor(self):
        self._track("current_for_actor")
        if self.actor_results:
            return self.actor_results.pop(0)
        return None

    async def current(self, branch_id=None, section_id=None):
        if section_id is None:
            self._track("current")
            return None
        self._track(f"current:{section_id}")
        gate = self.section_gates.get(section_id)
        if gate is not None:
            await gate.wait()
        delay = self.section_delays.get(section_id)
        if delay:
            await asyncio.sleep(delay)
        for s in self.shifts.values():
            if s.branch_id == branch_id and s.section_id == section_id and s.is_open:
                return s
        return None

    async def current_for_branch(self, branch_id):
        self._track("current_for_branch")
        return None

    async def list_shifts(self, branch_id, section_id=None, status="ALL", limit=50, offset=0):
        self._track("list_shifts")
        return ShiftPage(items=[], total=0, limit=limit, offset=offset)

    async def list_sections(self, branch_id):
        self._track("list_sections")
        return list(self.sections)

    async def get_pref(self, key, branch_id):
        self._track("get_pref")
        return self.prefs.get((key, branch_id))

    async def set_pref(self, key, branch_id, value):
        self._track("set_pref")
        self.prefs[(key, branch_id)] = value

    async def open_shift(self, branch_id, section_id, opening_cash):
        raise NotImplementedError

    async def close_shift(self, shift_id, closing_cash):
        raise NotImplementedError

    async def record_movement(self, shift_id, type, amount, note=None):
        raise NotImplementedError

    async def list_movements(self, shift_id):
        return []


@pytest.fixture
def auth():
    return headers


@pytest.fixture
def shift_factory():
    return make_shift


@pytest.fixture
def backend_factory():
    return FakeBackend
