"""Cálculo puro de efectivo esperado y diferencia de cierre.

Nada de esto se persiste: el esperado se deriva siempre del ledger de
movimientos más el total de ventas en efectivo, así no hay deriva entre lo
guardado y lo real.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Tuple

from cashdrawer.core.errors import InvalidAmountError
from cashdrawer.core.schemas import ClosedShiftSummary, ShiftSummary
from cashdrawer.models.shift import MovementType

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Normaliza a Decimal con 2 decimales (ROUND_HALF_UP)."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = repr(value)
    try:
        d = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid money amount: {value!r}")
    if not d.is_finite():
        raise InvalidAmountError(f"Money amount must be finite: {value!r}")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def movement_totals(movements: Iterable) -> Tuple[Decimal, Decimal]:
    pay_in = Decimal("0.00")
    pay_out = Decimal("0.00")
    for m in movements:
        if m.type == MovementType.PAY_IN.value:
            pay_in += to_money(m.amount)
        elif m.type == MovementType.PAY_OUT.value:
            pay_out += to_money(m.amount)
    return pay_in, pay_out


def expected_cash(shift, movements: Iterable, cash_sales_total) -> Decimal:
    pay_in, pay_out = movement_totals(movements)
    return to_money(shift.opening_cash) + to_money(cash_sales_total) + pay_in - pay_out


def difference(closing_cash, expected) -> Decimal:
    # positivo = sobrante, negativo = faltante
    return to_money(closing_cash) - to_money(expected)


def summarize(shift, movements, cash_sales_total, card_sales_total) -> ShiftSummary:
    movements = list(movements)
    pay_in, pay_out = movement_totals(movements)
    expected = expected_cash(shift, movements, cash_sales_total)
    closing: Optional[Decimal] = None
    diff: Optional[Decimal] = None
    if shift.closing_cash is not None:
        closing = to_money(shift.closing_cash)
        diff = difference(closing, expected)

    fields = dict(
        shift_id=shift.id,
        branch_id=shift.branch_id,
        section_id=shift.section_id,
        status=shift.status,
        opened_by=shift.opened_by,
        opened_at=shift.opened_at,
        closed_by=shift.closed_by,
        closed_at=shift.closed_at,
        opening_cash=to_money(shift.opening_cash),
        cash_sales_total=to_money(cash_sales_total),
        card_sales_total=to_money(card_sales_total),
        pay_in_total=pay_in,
        pay_out_total=pay_out,
        movement_count=len(movements),
        expected_cash=expected,
        closing_cash=closing,
        difference=diff,
    )
    if shift.status == "CLOSED":
        return ClosedShiftSummary(**fields)
    return ShiftSummary(**fields)
