"""Acceso asíncrono al almacén de turnos usado por el resolver y la sesión."""
from __future__ import annotations

import abc
from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from cashdrawer.core.errors import AlreadyClosedError, PersistenceUnavailable, ProbeFailure, ValidationError
from cashdrawer.core.logging import get_logger
from cashdrawer.core.schemas import (
    ClosedShiftSummary,
    MovementOut,
    SectionOut,
    ShiftOpenOut,
    ShiftOut,
    ShiftPage,
)
from cashdrawer.services import ledger, lifecycle, sections

log = get_logger("backend")


class ShiftBackend(abc.ABC):
    """Almacén remoto ligado a una identidad (actor + sucursal de su sesión).

    Las lecturas fallidas se reportan como ``ProbeFailure``.
    """

    @abc.abstractmethod
    async def get_shift(self, shift_id: str) -> Optional[ShiftOut]: ...

    @abc.abstractmethod
    async def current_for_actor(self) -> Optional[ShiftOut]: ...

    @abc.abstractmethod
    async def current(
        self, branch_id: Optional[str] = None, section_id: Optional[str] = None
    ) -> Optional[ShiftOut]: ...

    @abc.abstractmethod
    async def current_for_branch(self, branch_id: str) -> Optional[ShiftOut]: ...

    @abc.abstractmethod
    async def list_shifts(
        self,
        branch_id: str,
        section_id: Optional[str] = None,
        status: str = "ALL",
        limit: int = 50,
        offset: int = 0,
    ) -> ShiftPage: ...

    @abc.abstractmethod
    async def list_sections(self, branch_id: str) -> List[SectionOut]: ...

    @abc.abstractmethod
    async def get_pref(self, key: str, branch_id: str) -> Optional[str]: ...

    @abc.abstractmethod
    async def set_pref(self, key: str, branch_id: str, value: Optional[str]) -> None: ...

    @abc.abstractmethod
    async def open_shift(
        self, branch_id: Optional[str], section_id: str, opening_cash: Decimal
    ) -> ShiftOpenOut: ...

    @abc.abstractmethod
    async def close_shift(self, shift_id: str, closing_cash: Decimal) -> ClosedShiftSummary: ...

    @abc.abstractmethod
    async def record_movement(
        self, shift_id: str, type: str, amount: Decimal, note: Optional[str] = None
    ) -> MovementOut: ...

    @abc.abstractmethod
    async def list_movements(self, shift_id: str) -> List[MovementOut]: ...


def _shift_or_none(shift) -> Optional[ShiftOut]:
    return ShiftOut.model_validate(shift) if shift is not None else None


class LocalShiftBackend(ShiftBackend):
    """Ejecuta la capa de servicios en un hilo de trabajo, una sesión por llamada."""

    def __init__(self, session_factory: Callable[[], Session], actor_id: str, branch_id: Optional[str] = None):
        self._session_factory = session_factory
        self.actor_id = actor_id
        self.branch_id = branch_id

    def _run(self, fn):
        db = self._session_factory()
        try:
            return fn(db)
        finally:
            db.close()

    async def _read(self, fn):
        try:
            return await run_in_threadpool(self._run, fn)
        except (SQLAlchemyError, ValidationError) as exc:
            raise ProbeFailure(f"store read failed: {exc!r}")

    async def _write(self, fn):
        try:
            return await run_in_threadpool(self._run, fn)
        except SQLAlchemyError as exc:
            log.error("store write failed: %r", exc)
            raise PersistenceUnavailable("Persistence layer unavailable")

    async def get_shift(self, shift_id):
        return await self._read(lambda db: _shift_or_none(lifecycle.get_shift(db, shift_id)))

    async def current_for_actor(self):
        return await self._read(lambda db: _shift_or_none(lifecycle.current_for_actor(db, self.actor_id)))

    async def current(self, branch_id=None, section_id=None):
        return await self._read(
            lambda db: _shift_or_none(
                lifecycle.current(db, self.actor_id, branch_id, section_id, scope_branch_id=self.branch_id)
            )
        )

    async def current_for_branch(self, branch_id):
        return await self._read(lambda db: _shift_or_none(lifecycle.current_for_branch(db, branch_id)))

    async def list_shifts(self, branch_id, section_id=None, status="ALL", limit=50, offset=0):
        def _page(db):
            flt = lifecycle.ShiftFilter(branch_id=branch_id, section_id=section_id, status=status)
            items, total, lim, off = lifecycle.list_shifts(db, flt, limit, offset)
            return ShiftPage(
                items=[ShiftOut.model_validate(s) for s in items], total=total, limit=lim, offset=off
            )

        return await self._read(_page)

    async def list_sections(self, branch_id):
        return await self._read(
            lambda db: [SectionOut.model_validate(s) for s in sections.list_sections(db, branch_id)]
        )

    async def get_pref(self, key, branch_id):
        return await self._read(lambda db: sections.get_pref(db, key, branch_id, self.actor_id))

    async def set_pref(self, key, branch_id, value):
        def _set(db):
            sections.set_pref(db, key, branch_id, self.actor_id, value)

        await self._write(_set)

    async def open_shift(self, branch_id, section_id, opening_cash):
        def _open(db):
            shift, adopted = lifecycle.open_shift(db, branch_id, section_id, opening_cash, self.actor_id)
            return ShiftOpenOut.model_validate(shift).model_copy(update={"adopted": adopted})

        return await self._write(_open)

    async def close_shift(self, shift_id, closing_cash):
        def _close(db):
            try:
                return lifecycle.close_shift(db, shift_id, closing_cash, self.actor_id)
            except AlreadyClosedError as exc:
                return exc.summary.model_copy(update={"already_closed": True})

        return await self._write(_close)

    async def record_movement(self, shift_id, type, amount, note=None):
        return await self._write(
            lambda db: MovementOut.model_validate(
                ledger.record_movement(db, shift_id, type, amount, note, self.actor_id)
            )
        )

    async def list_movements(self, shift_id):
        return await self._read(
            lambda db: [MovementOut.model_validate(m) for m in ledger.list_movements(db, shift_id)]
        )
