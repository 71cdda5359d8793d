"""Estado de turno de UNA sesión de UI (un solo escritor, no compartido)."""
from __future__ import annotations

import asyncio
from typing import List, Optional

from cashdrawer.core.config import settings
from cashdrawer.core.errors import ProbeFailure, ShiftClosedError, ShiftError, ValidationError
from cashdrawer.core.logging import get_logger
from cashdrawer.core.schemas import ClosedShiftSummary, MovementOut, ShiftOut
from cashdrawer.resolver.backend import ShiftBackend
from cashdrawer.resolver.context import PinningGuard, ResolutionContext
from cashdrawer.resolver.resolver import CurrentShiftResolver
from cashdrawer.services.reconciliation import to_money
from cashdrawer.services.sections import LAST_SHIFT_SECTION

log = get_logger("session")


class ShiftSession:
    def __init__(
        self,
        backend: ShiftBackend,
        context: ResolutionContext,
        resolver: Optional[CurrentShiftResolver] = None,
        reprobe_delay: Optional[float] = None,
    ):
        self._backend = backend
        self._guard = PinningGuard(context)
        self._resolver = resolver or CurrentShiftResolver()
        self._reprobe_delay = settings.reprobe_delay_seconds if reprobe_delay is None else reprobe_delay
        self._reprobed = False
        self._final = False
        self.current: Optional[ShiftOut] = None

    @property
    def context(self) -> ResolutionContext:
        return self._guard.context

    @property
    def pinned_shift_id(self) -> Optional[str]:
        return self._guard.pinned_shift_id

    @property
    def is_final(self) -> bool:
        return self._final

    # ---------- resolución ----------
    async def refresh(self, force: bool = False) -> Optional[ShiftOut]:
        """Resuelve el turno actual; un único re-sondeo diferido tras el primer None."""
        if self._final and self.current is None and not force:
            return None
        generation = self._guard.generation
        ctx = self._guard.context
        found = await self._probe(ctx)

        if found is None and not self._reprobed:
            self._reprobed = True
            await asyncio.sleep(self._reprobe_delay)
            if generation != self._guard.generation:
                return self.current
            found = await self._probe(self._guard.context)

        await self._apply(found, generation)
        if self.current is None and self._reprobed and generation == self._guard.generation:
            self._final = True
        return self.current

    async def _probe(self, ctx: ResolutionContext) -> Optional[ShiftOut]:
        return (await self._resolver.resolve(ctx, self._backend)).shift

    async def _apply(self, found: Optional[ShiftOut], generation: int) -> None:
        if self._guard.admit(found, generation):
            await self._accept_and_remember(found)
            return
        if generation != self._guard.generation:
            log.debug("discarding probe result from a previous context")
            return

        pinned = self.pinned_shift_id
        closed = await self._pinned_closed(pinned)
        if pinned != self.pinned_shift_id or generation != self._guard.generation:
            return
        if closed:
            log.info("pinned shift %s is closed; releasing pin", pinned)
            self._guard.release(pinned)
            await self._accept_and_remember(found)
        else:
            log.debug(
                "discarding shift %s: session pinned to %s",
                found.id if found else None, pinned,
            )

    async def _pinned_closed(self, pinned: str) -> bool:
        try:
            shift = await self._backend.get_shift(pinned)
        except ProbeFailure:
            return False
        return shift is None or not shift.is_open

    def _accept(self, shift: Optional[ShiftOut]) -> bool:
        changed = (shift.id if shift else None) != (self.current.id if self.current else None)
        self.current = shift
        if shift is not None:
            self._final = False
        return changed and shift is not None

    async def _accept_and_remember(self, shift: Optional[ShiftOut]) -> None:
        if self._accept(shift):
            await self._remember_section(shift)

    async def _remember_section(self, shift: ShiftOut) -> None:
        # best-effort: una falla aquí no afecta la sesión
        try:
            await self._backend.set_pref(LAST_SHIFT_SECTION, shift.branch_id, shift.section_id)
        except ShiftError as exc:
            log.warning("could not store %s hint: %s", LAST_SHIFT_SECTION, exc.detail)

    # ---------- transiciones ----------
    def select(self, shift: ShiftOut) -> ShiftOut:
        """El actor eligió explícitamente este turno: queda fijado."""
        if not shift.is_open:
            raise ValidationError(f"Shift {shift.id} is not open")
        self._guard.pin(shift.id)
        self._accept(shift)
        return shift

    async def open(self, section_id: str, opening_cash, branch_id: Optional[str] = None) -> ShiftOut:
        shift = await self._backend.open_shift(
            branch_id or self.context.branch_id, section_id, to_money(opening_cash)
        )
        if getattr(shift, "adopted", False):
            log.info("open converged on existing shift %s", shift.id)
        selected = self.select(ShiftOut.model_validate(shift.model_dump()))
        await self._remember_section(selected)
        return selected

    async def close(self, closing_cash) -> ClosedShiftSummary:
        if self.current is None:
            raise ValidationError("No current shift to close")
        shift_id = self.current.id
        summary = await self._backend.close_shift(shift_id, to_money(closing_cash))
        self._drop(shift_id)
        return summary

    async def record_movement(self, type: str, amount, note: Optional[str] = None) -> MovementOut:
        if self.current is None:
            raise ValidationError("No current shift")
        shift_id = self.current.id
        try:
            return await self._backend.record_movement(shift_id, type, to_money(amount), note)
        except ShiftClosedError:
            self._drop(shift_id)
            raise

    async def movements(self) -> List[MovementOut]:
        if self.current is None:
            return []
        return await self._backend.list_movements(self.current.id)

    def switch_branch(self, branch_id: Optional[str], section_id: Optional[str] = None) -> ResolutionContext:
        ctx = self._guard.switch_branch(branch_id, section_id)
        self.current = None
        self._final = False
        self._reprobed = False
        return ctx

    def _drop(self, shift_id: str) -> None:
        self._guard.release(shift_id)
        if self.current is not None and self.current.id == shift_id:
            self.current = None
        self._final = False
        self._reprobed = False
