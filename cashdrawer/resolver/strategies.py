"""Estrategias del resolver, en orden de precedencia.

Cada una es ``async (context, backend) -> ShiftOut | None`` e independiente de
las demás. Un ``ProbeFailure`` o un resultado vacío sólo significa "siguiente".
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

from cashdrawer.core.errors import ProbeFailure
from cashdrawer.core.schemas import ShiftOut
from cashdrawer.resolver.backend import ShiftBackend
from cashdrawer.resolver.context import ResolutionContext
from cashdrawer.services.sections import LAST_SHIFT_SECTION

Strategy = Callable[[ResolutionContext, ShiftBackend], Awaitable[Optional[ShiftOut]]]


def _open_or_none(shift: Optional[ShiftOut]) -> Optional[ShiftOut]:
    return shift if shift is not None and shift.is_open else None


async def pinned_shift(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    if not ctx.pinned_shift_id:
        return None
    return _open_or_none(await backend.get_shift(ctx.pinned_shift_id))


async def actor_current(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    return _open_or_none(await backend.current_for_actor())


async def any_current(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    return _open_or_none(await backend.current())


async def branch_current(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    if not ctx.branch_id:
        return None
    return _open_or_none(await backend.current_for_branch(ctx.branch_id))


async def open_list_first(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    if not ctx.branch_id:
        return None
    page = await backend.list_shifts(ctx.branch_id, status="OPEN", limit=1, offset=0)
    return _open_or_none(page.items[0]) if page.items else None


async def last_used_section(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    if not ctx.branch_id:
        return None
    section_id = ctx.section_id or await backend.get_pref(LAST_SHIFT_SECTION, ctx.branch_id)
    if not section_id:
        return None
    return _open_or_none(await backend.current(ctx.branch_id, section_id))


async def probe_all_sections(ctx: ResolutionContext, backend: ShiftBackend) -> Optional[ShiftOut]:
    """Una consulta por sección en paralelo; gana la primera abierta en completar."""
    if not ctx.branch_id:
        return None
    sections = await backend.list_sections(ctx.branch_id)
    tasks = [asyncio.ensure_future(backend.current(ctx.branch_id, s.id)) for s in sections]
    try:
        for fut in asyncio.as_completed(tasks):
            try:
                shift = await fut
            except ProbeFailure:
                continue
            if _open_or_none(shift) is not None:
                return shift
    finally:
        for t in tasks:
            t.cancel()
    return None


DEFAULT_STRATEGIES: List[Strategy] = [
    pinned_shift,
    actor_current,
    any_current,
    branch_current,
    open_list_first,
    last_used_section,
    probe_all_sections,
]
