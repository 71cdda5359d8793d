from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from cashdrawer.core.schemas import ShiftOut


@dataclass(frozen=True)
class ResolutionContext:
    """Contexto inmutable de una sesión de UI: quién, dónde y qué turno está fijado."""

    actor_id: str
    branch_id: Optional[str] = None
    section_id: Optional[str] = None
    pinned_shift_id: Optional[str] = None


class PinningGuard:
    """Guarda de turno fijado para UNA sesión (un solo escritor).

    Mientras haya un id fijado, cualquier resultado del resolver con otro id
    se descarta; se compara por identidad, no por orden de llegada. Cada cambio
    de contexto (sucursal) incrementa ``generation`` e invalida sondeos en curso.
    """

    def __init__(self, context: ResolutionContext):
        self._context = context
        self.generation = 0

    @property
    def context(self) -> ResolutionContext:
        return self._context

    @property
    def pinned_shift_id(self) -> Optional[str]:
        return self._context.pinned_shift_id

    def pin(self, shift_id: str) -> ResolutionContext:
        self._context = replace(self._context, pinned_shift_id=shift_id)
        return self._context

    def release(self, shift_id: Optional[str] = None) -> ResolutionContext:
        if shift_id is None or shift_id == self._context.pinned_shift_id:
            self._context = replace(self._context, pinned_shift_id=None)
        return self._context

    def switch_branch(self, branch_id: Optional[str], section_id: Optional[str] = None) -> ResolutionContext:
        self._context = replace(
            self._context, branch_id=branch_id, section_id=section_id, pinned_shift_id=None
        )
        self.generation += 1
        return self._context

    def admit(self, shift: Optional[ShiftOut], generation: int) -> bool:
        if generation != self.generation:
            return False
        pinned = self._context.pinned_shift_id
        if pinned is None:
            return True
        return shift is not None and shift.id == pinned
