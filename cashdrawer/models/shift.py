import enum
import threading
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String, Text, text

from ..db import Base


def new_id() -> str:
    return uuid.uuid4().hex


_last_ns = 0
_ns_lock = threading.Lock()


def sortable_id() -> str:
    """Id que ordena por momento de creación (monótono dentro del proceso)."""
    global _last_ns
    with _ns_lock:
        _last_ns = max(time.time_ns(), _last_ns + 1)
        ns = _last_ns
    return f"{ns:016x}{uuid.uuid4().hex[:16]}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShiftStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class MovementType(str, enum.Enum):
    PAY_IN = "PAY_IN"
    PAY_OUT = "PAY_OUT"


class Shift(Base):
    __tablename__ = "shift"

    id = Column(String(32), primary_key=True, default=new_id)
    branch_id = Column(String(64), nullable=False, index=True)
    section_id = Column(String(64), nullable=False)
    status = Column(String(10), nullable=False, default=ShiftStatus.OPEN.value)  # OPEN|CLOSED
    opened_by = Column(String(64), nullable=False, index=True)
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    closed_by = Column(String(64), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    opening_cash = Column(Numeric(12, 2), nullable=False, default=0)
    closing_cash = Column(Numeric(12, 2), nullable=True)
    # expected_cash / difference NO se guardan: se derivan del ledger

    __table_args__ = (
        # Un solo turno OPEN por (branch, section)
        Index(
            "uq_shift_open_scope",
            "branch_id",
            "section_id",
            unique=True,
            sqlite_where=text("status = 'OPEN'"),
            postgresql_where=text("status = 'OPEN'"),
        ),
    )


class CashMovement(Base):
    __tablename__ = "cash_movement"

    id = Column(String(32), primary_key=True, default=sortable_id)
    shift_id = Column(String(32), ForeignKey("shift.id"), nullable=False, index=True)
    type = Column(String(10), nullable=False)  # PAY_IN|PAY_OUT
    amount = Column(Numeric(12, 2), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(String(64), nullable=False)
