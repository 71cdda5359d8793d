from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

StatusFilter = Literal["OPEN", "CLOSED", "ALL"]


class ShiftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    branch_id: str
    section_id: str
    status: Literal["OPEN", "CLOSED"]
    opened_by: str
    opened_at: datetime
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    opening_cash: Decimal
    closing_cash: Optional[Decimal] = None

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN" and self.closed_at is None


class ShiftOpenOut(ShiftOut):
    adopted: bool = False


class ShiftOpenIn(BaseModel):
    branch_id: Optional[str] = None
    section_id: Optional[str] = None
    opening_cash: Decimal = Decimal("0")


class ShiftCloseIn(BaseModel):
    closing_cash: Decimal


class ShiftPage(BaseModel):
    items: List[ShiftOut] = Field(default_factory=list)
    total: int = 0
    limit: int
    offset: int


class ShiftSummary(BaseModel):
    shift_id: str
    branch_id: str
    section_id: str
    status: Literal["OPEN", "CLOSED"]
    opened_by: str
    opened_at: datetime
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    opening_cash: Decimal
    cash_sales_total: Decimal
    card_sales_total: Decimal
    pay_in_total: Decimal
    pay_out_total: Decimal
    movement_count: int
    expected_cash: Decimal
    closing_cash: Optional[Decimal] = None
    difference: Optional[Decimal] = None


class ClosedShiftSummary(ShiftSummary):
    status: Literal["CLOSED"] = "CLOSED"
    closing_cash: Decimal
    difference: Decimal
    already_closed: bool = False


class MovementIn(BaseModel):
    type: Literal["PAY_IN", "PAY_OUT"]
    amount: Decimal
    note: Optional[str] = None


class MovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    shift_id: str
    type: Literal["PAY_IN", "PAY_OUT"]
    amount: Decimal
    note: Optional[str] = None
    created_at: datetime
    created_by: str


class SectionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    branch_id: str
    name: str


class PrefIn(BaseModel):
    value: Optional[str] = None


class PrefOut(BaseModel):
    key: str
    branch_id: str
    value: Optional[str] = None
