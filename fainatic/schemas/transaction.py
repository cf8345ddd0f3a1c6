from pydantic import BaseModel, PlainSerializer, field_validator
from typing import Annotated, List, Optional
import datetime
from decimal import Decimal
from enum import Enum

# Absolute amounts at or above this are rejected
MAX_AMOUNT = Decimal("1e15")

# Decimals stay exact in Python and go out as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Category(str, Enum):
    INCOME = "Income"
    SHOPPING = "Shopping"
    TRANSPORT = "Transport"
    FOOD = "Food"
    ENTERTAINMENT = "Entertainment"
    GROCERIES = "Groceries"
    INSURANCE = "Insurance"
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    OTHER = "Other"


class Transaction(BaseModel):
    date: datetime.date
    amount: Money
    currency: Optional[str] = None
    counterparty: str = ""
    category: Category

    @field_validator('amount')
    @classmethod
    def amount_must_be_finite_and_bounded(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("amount must be a finite number")
        if abs(v) >= MAX_AMOUNT:
            raise ValueError(f"amount must be smaller than {MAX_AMOUNT:f} in absolute value")
        return v

    class Config:
        frozen = True


class TransactionList(BaseModel):
    transactions: List[Transaction]
