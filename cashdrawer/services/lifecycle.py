"""Apertura/cierre de turnos y consultas de turno actual.

La unicidad de un turno OPEN por (branch, section) la impone el índice
parcial ``uq_shift_open_scope``; aquí sólo se traduce el conflicto en
"adoptar al ganador".
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cashdrawer.core.config import settings
from cashdrawer.core.errors import AlreadyClosedError, ConflictError, NotFoundError, ValidationError
from cashdrawer.core.logging import get_logger
from cashdrawer.core.schemas import ClosedShiftSummary, ShiftSummary
from cashdrawer.models.shift import CashMovement, Shift, ShiftStatus, utcnow
from cashdrawer.services import reconciliation, sales
from cashdrawer.services.sections import get_section

log = get_logger("lifecycle")

OPEN = ShiftStatus.OPEN.value
CLOSED = ShiftStatus.CLOSED.value


@dataclass(frozen=True)
class ShiftFilter:
    branch_id: str
    section_id: Optional[str] = None
    status: str = "ALL"  # OPEN | CLOSED | ALL


# ---------- READ ----------
def get_shift(db: Session, shift_id: str) -> Optional[Shift]:
    if not shift_id:
        raise ValidationError("id is required")
    return db.get(Shift, shift_id)


def _require(db: Session, shift_id: str) -> Shift:
    shift = get_shift(db, shift_id)
    if shift is None:
        raise NotFoundError(f"Shift {shift_id} not found")
    return shift


def _first_open(db: Session, *where) -> Optional[Shift]:
    return db.execute(
        select(Shift)
        .where(Shift.status == OPEN, *where)
        .order_by(Shift.opened_at.desc(), Shift.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def current_for_section(db: Session, branch_id: str, section_id: str) -> Optional[Shift]:
    if not section_id:
        raise ValidationError("section_id is required")
    if not branch_id:
        sec = get_section(db, section_id)
        branch_id = sec.branch_id if sec else None
    if not branch_id:
        raise ValidationError("branch_id is required")
    return _first_open(db, Shift.branch_id == branch_id, Shift.section_id == section_id)


def current_for_actor(db: Session, actor: str) -> Optional[Shift]:
    if not actor:
        raise ValidationError("actor is required")
    return _first_open(db, Shift.opened_by == actor)


def current_for_branch(db: Session, branch_id: str) -> Optional[Shift]:
    if not branch_id:
        raise ValidationError("branch_id is required")
    return _first_open(db, Shift.branch_id == branch_id)


def current(
    db: Session,
    actor: str,
    branch_id: Optional[str] = None,
    section_id: Optional[str] = None,
    scope_branch_id: Optional[str] = None,
) -> Optional[Shift]:
    """Sección si viene completa; si no, sucursal; si no, el del actor y luego su sucursal."""
    if section_id:
        return current_for_section(db, branch_id or scope_branch_id, section_id)
    if branch_id:
        return current_for_branch(db, branch_id)
    shift = current_for_actor(db, actor)
    if shift is None and scope_branch_id:
        shift = current_for_branch(db, scope_branch_id)
    return shift


def list_shifts(
    db: Session, flt: ShiftFilter, limit: Optional[int] = None, offset: Optional[int] = None
) -> Tuple[List[Shift], int, int, int]:
    if not flt.branch_id:
        raise ValidationError("branch_id is required")
    if flt.status not in ("OPEN", "CLOSED", "ALL"):
        raise ValidationError("status must be OPEN, CLOSED or ALL")
    limit = settings.list_default_limit if limit is None else limit
    limit = min(max(int(limit), 1), settings.list_max_limit)
    offset = max(int(offset or 0), 0)

    where = [Shift.branch_id == flt.branch_id]
    if flt.section_id:
        where.append(Shift.section_id == flt.section_id)
    if flt.status != "ALL":
        where.append(Shift.status == flt.status)

    items = list(
        db.execute(
            select(Shift)
            .where(*where)
            .order_by(Shift.opened_at.desc(), Shift.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars()
    )
    total = db.execute(select(func.count()).select_from(Shift).where(*where)).scalar() or 0
    return items, int(total), limit, offset


def summary(db: Session, shift_id: str) -> ShiftSummary:
    return _summarize(db, _require(db, shift_id))


def _summarize(db: Session, shift: Shift) -> ShiftSummary:
    movements = db.execute(
        select(CashMovement).where(CashMovement.shift_id == shift.id)
    ).scalars()
    return reconciliation.summarize(
        shift,
        movements,
        sales.cash_sales_total(db, shift.id),
        sales.card_sales_total(db, shift.id),
    )


# ---------- OPEN ----------
def open_shift(
    db: Session,
    branch_id: Optional[str],
    section_id: Optional[str],
    opening_cash,
    actor: str,
) -> Tuple[Shift, bool]:
    """Abre un turno. Devuelve (turno, adoptado).

    Si el índice de unicidad rechaza el INSERT porque otro turno OPEN ganó la
    carrera, se devuelve ese turno con ``adoptado=True``.
    """
    if not section_id:
        raise ValidationError("section_id is required")
    if not actor:
        raise ValidationError("actor is required")
    opening_cash = reconciliation.to_money(opening_cash)
    if opening_cash < 0:
        raise ValidationError("opening_cash must be >= 0")
    if not branch_id:
        sec = get_section(db, section_id)
        branch_id = sec.branch_id if sec else None
    if not branch_id:
        raise ValidationError("branch_id is required")

    for _ in range(2):
        shift = Shift(
            branch_id=branch_id,
            section_id=section_id,
            status=OPEN,
            opened_by=actor,
            opened_at=utcnow(),
            opening_cash=opening_cash,
        )
        db.add(shift)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            winner = _first_open(db, Shift.branch_id == branch_id, Shift.section_id == section_id)
            if winner is not None:
                log.warning(
                    "open conflict on %s/%s: adopting shift %s opened by %s",
                    branch_id, section_id, winner.id, winner.opened_by,
                )
                return winner, True
            # el ganador ya cerró entre el INSERT y la relectura; reintenta
            continue
        db.refresh(shift)
        log.info(
            "opened shift %s on %s/%s by %s with %s",
            shift.id, branch_id, section_id, actor, opening_cash,
        )
        return shift, False
    raise ConflictError(branch_id, section_id)


# ---------- CLOSE (idempotente) ----------
def close_shift(db: Session, shift_id: str, closing_cash, actor: str) -> ClosedShiftSummary:
    """Cierra el turno (CAS OPEN -> CLOSED) y devuelve el resumen derivado.

    Si ya estaba cerrado lanza ``AlreadyClosedError`` con el resumen existente,
    sin tocar closed_at/closing_cash.
    """
    if not actor:
        raise ValidationError("actor is required")
    closing_cash = reconciliation.to_money(closing_cash)
    if closing_cash < 0:
        raise ValidationError("closing_cash must be >= 0")

    res = db.execute(
        update(Shift)
        .where(Shift.id == shift_id, Shift.status == OPEN)
        .values(status=CLOSED, closed_at=utcnow(), closed_by=actor, closing_cash=closing_cash)
        .execution_options(synchronize_session=False)
    )
    if not res.rowcount:
        db.rollback()
        shift = _require(db, shift_id)
        db.refresh(shift)
        raise AlreadyClosedError(shift_id, _summarize(db, shift))

    db.commit()
    shift = db.get(Shift, shift_id, populate_existing=True)
    result = _summarize(db, shift)
    log.info(
        "closed shift %s by %s: expected=%s counted=%s difference=%s",
        shift_id, actor, result.expected_cash, result.closing_cash, result.difference,
    )
    return result
