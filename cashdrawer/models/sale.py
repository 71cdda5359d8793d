from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from .shift import new_id, utcnow
from ..db import Base


class SalePayment(Base):
    """Pagos capturados por el subsistema de órdenes, ligados al turno."""

    __tablename__ = "sale_payment"

    id = Column(String(32), primary_key=True, default=new_id)
    shift_id = Column(String(32), ForeignKey("shift.id"), nullable=False, index=True)
    method = Column(String(20), nullable=False)  # cash | card
    amount = Column(Numeric(12, 2), nullable=False)
    captured_at = Column(DateTime(timezone=True), default=utcnow)
