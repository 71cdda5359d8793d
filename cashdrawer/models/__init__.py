from .section import Section, UserPref
from .sale import SalePayment
from .shift import CashMovement, MovementType, Shift, ShiftStatus

__all__ = [
    "CashMovement",
    "MovementType",
    "SalePayment",
    "Section",
    "Shift",
    "ShiftStatus",
    "UserPref",
]
