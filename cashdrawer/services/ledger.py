"""Ledger append-only de entradas/salidas manuales de efectivo."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import DateTime, Numeric, String, Text, insert, literal, select
from sqlalchemy.orm import Session

from cashdrawer.core.errors import InvalidAmountError, NotFoundError, ShiftClosedError, ValidationError
from cashdrawer.core.logging import get_logger
from cashdrawer.models.shift import CashMovement, MovementType, Shift, ShiftStatus, sortable_id, utcnow
from cashdrawer.services.reconciliation import to_money

log = get_logger("ledger")

_MOVEMENT_COLUMNS = ["id", "shift_id", "type", "amount", "note", "created_at", "created_by"]


def record_movement(
    db: Session,
    shift_id: str,
    type: str,
    amount,
    note: Optional[str],
    actor: str,
) -> CashMovement:
    if not shift_id:
        raise ValidationError("shift_id is required")
    if not actor:
        raise ValidationError("actor is required")
    try:
        mtype = MovementType(type).value
    except ValueError:
        raise ValidationError(f"type must be PAY_IN or PAY_OUT, got {type!r}")
    amount = to_money(amount)
    if amount <= 0:
        raise InvalidAmountError("amount must be greater than 0")

    # Bloquea la fila del turno (PostgreSQL); en SQLite no aplica
    db.execute(select(Shift.id).where(Shift.id == shift_id).with_for_update())

    # INSERT condicionado al estado: el chequeo ocurre al escribir, no al resolver
    movement_id = sortable_id()
    source = select(
        literal(movement_id, String),
        Shift.id,
        literal(mtype, String),
        literal(amount, Numeric(12, 2)),
        literal(note, Text),
        literal(utcnow(), DateTime(timezone=True)),
        literal(actor, String),
    ).where(Shift.id == shift_id, Shift.status == ShiftStatus.OPEN.value)
    res = db.execute(insert(CashMovement).from_select(_MOVEMENT_COLUMNS, source))

    if not res.rowcount:
        db.rollback()
        if db.get(Shift, shift_id) is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        log.info("rejected %s of %s on non-open shift %s", mtype, amount, shift_id)
        raise ShiftClosedError(shift_id)

    db.commit()
    log.info("recorded %s of %s on shift %s by %s", mtype, amount, shift_id, actor)
    return db.get(CashMovement, movement_id)


def list_movements(db: Session, shift_id: str) -> List[CashMovement]:
    """Secuencia completa, más reciente primero."""
    if db.get(Shift, shift_id) is None:
        raise NotFoundError(f"Shift {shift_id} not found")
    return list(
        db.execute(
            select(CashMovement)
            .where(CashMovement.shift_id == shift_id)
            .order_by(CashMovement.created_at.desc(), CashMovement.id.desc())
        ).scalars()
    )
