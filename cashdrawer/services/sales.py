from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cashdrawer.models.sale import SalePayment
from cashdrawer.services.reconciliation import to_money


def _total_by_method(db: Session, shift_id: str, method: str) -> Decimal:
    total = db.execute(
        select(func.coalesce(func.sum(SalePayment.amount), 0)).where(
            SalePayment.shift_id == shift_id,
            func.lower(SalePayment.method) == method,
        )
    ).scalar()
    return to_money(total)


def cash_sales_total(db: Session, shift_id: str) -> Decimal:
    return _total_by_method(db, shift_id, "cash")


def card_sales_total(db: Session, shift_id: str) -> Decimal:
    return _total_by_method(db, shift_id, "card")
