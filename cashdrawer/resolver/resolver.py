from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from cashdrawer.core.errors import ProbeFailure
from cashdrawer.core.logging import get_logger
from cashdrawer.core.schemas import ShiftOut
from cashdrawer.resolver.backend import ShiftBackend
from cashdrawer.resolver.context import ResolutionContext
from cashdrawer.resolver.strategies import DEFAULT_STRATEGIES, Strategy

log = get_logger("resolver")


@dataclass(frozen=True)
class Resolution:
    shift: Optional[ShiftOut]
    strategy: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.shift is not None


class CurrentShiftResolver:
    """Cadena de estrategias con corto circuito en el primer acierto.

    ``Resolution(None)`` sólo tras agotar todas: no hay turno abierto, no es error.
    """

    def __init__(self, strategies: Optional[Iterable[Strategy]] = None):
        self.strategies = list(strategies if strategies is not None else DEFAULT_STRATEGIES)

    async def resolve(self, ctx: ResolutionContext, backend: ShiftBackend) -> Resolution:
        failures = 0
        for strategy in self.strategies:
            name = getattr(strategy, "__name__", repr(strategy))
            try:
                shift = await strategy(ctx, backend)
            except ProbeFailure as exc:
                failures += 1
                log.debug("strategy %s failed: %s", name, exc.detail)
                continue
            if shift is not None and shift.is_open:
                log.debug("strategy %s hit shift %s", name, shift.id)
                return Resolution(shift, name)
        if failures == len(self.strategies) and failures:
            log.warning("all %d resolver strategies failed for actor %s", failures, ctx.actor_id)
        return Resolution(None)


async def resolve_current(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    return (await CurrentShiftResolver().resolve(ctx, backend)).shift
