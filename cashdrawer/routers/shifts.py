from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cashdrawer.core.errors import AlreadyClosedError, NotFoundError
from cashdrawer.core.schemas import (
    ClosedShiftSummary,
    MovementIn,
    MovementOut,
    ShiftCloseIn,
    ShiftOpenIn,
    ShiftOpenOut,
    ShiftOut,
    ShiftPage,
    ShiftSummary,
    StatusFilter,
)
from cashdrawer.db import get_db, get_session_factory
from cashdrawer.resolver import LocalShiftBackend, ResolutionContext, resolve_current
from cashdrawer.routers.deps import Actor, get_actor
from cashdrawer.services import ledger, lifecycle

router = APIRouter(prefix="/shifts", tags=["shifts"])


# ---------- OPEN ----------
@router.post("/open", response_model=ShiftOpenOut)
def open_shift(payload: ShiftOpenIn, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    shift, adopted = lifecycle.open_shift(
        db,
        payload.branch_id or actor.branch_id,
        payload.section_id,
        payload.opening_cash,
        actor.id,
    )
    return ShiftOpenOut.model_validate(shift).model_copy(update={"adopted": adopted})


# ---------- CURRENT ----------
@router.get("/current", response_model=Optional[ShiftOut])
def current(
    branch_id: Optional[str] = None,
    section_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return lifecycle.current(db, actor.id, branch_id, section_id, scope_branch_id=actor.branch_id)


@router.get("/current/me", response_model=Optional[ShiftOut])
def current_for_actor(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return lifecycle.current_for_actor(db, actor.id)


@router.get("/current/branch", response_model=Optional[ShiftOut])
def current_for_branch(
    branch_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return lifecycle.current_for_branch(db, branch_id or actor.branch_id)


@router.get("/resolve", response_model=Optional[ShiftOut])
async def resolve(
    pinned_shift_id: Optional[str] = None,
    branch_id: Optional[str] = None,
    section_id: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    session_factory=Depends(get_session_factory),
):
    """Resolución completa por estrategias (el cliente no sabe qué turno está abierto)."""
    branch = branch_id or actor.branch_id
    ctx = ResolutionContext(
        actor_id=actor.id, branch_id=branch, section_id=section_id, pinned_shift_id=pinned_shift_id
    )
    return await resolve_current(ctx, LocalShiftBackend(session_factory, actor.id, branch))


# ---------- LIST ----------
@router.get("/list", response_model=ShiftPage)
def list_shifts(
    branch_id: Optional[str] = None,
    section_id: Optional[str] = None,
    status: StatusFilter = "ALL",
    limit: Optional[int] = Query(default=None),
    offset: int = 0,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    flt = lifecycle.ShiftFilter(branch_id=branch_id or actor.branch_id, section_id=section_id, status=status)
    items, total, limit, offset = lifecycle.list_shifts(db, flt, limit, offset)
    return ShiftPage(items=[ShiftOut.model_validate(s) for s in items], total=total, limit=limit, offset=offset)


# ---------- CLOSE (idempotente) ----------
@router.put("/{shift_id}/close", response_model=ClosedShiftSummary)
def close_shift(
    shift_id: str,
    payload: ShiftCloseIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        return lifecycle.close_shift(db, shift_id, payload.closing_cash, actor.id)
    except AlreadyClosedError as exc:
        # Ya cerrado => resumen existente, sin tocar el cierre original
        return exc.summary.model_copy(update={"already_closed": True})


# ---------- MOVEMENTS ----------
@router.post("/{shift_id}/movements", response_model=MovementOut)
def record_movement(
    shift_id: str,
    payload: MovementIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return ledger.record_movement(db, shift_id, payload.type, payload.amount, payload.note, actor.id)


@router.get("/{shift_id}/movements", response_model=List[MovementOut])
def list_movements(shift_id: str, db: Session = Depends(get_db)):
    return ledger.list_movements(db, shift_id)


# ---------- READ ----------
@router.get("/{shift_id}/summary", response_model=ShiftSummary)
def shift_summary(shift_id: str, db: Session = Depends(get_db)):
    return lifecycle.summary(db, shift_id)


@router.get("/{shift_id}", response_model=ShiftOut)
def get_shift(shift_id: str, db: Session = Depends(get_db)):
    shift = lifecycle.get_shift(db, shift_id)
    if shift is None:
        raise NotFoundError(f"Shift {shift_id} not found")
    return shift
