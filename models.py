from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import Optional
from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    ROUND_HALF_UP,
    Rounded,
    localcontext,
)


# Number of fractional digits every amount is normalized to at ingestion
AMOUNT_SCALE = 4
_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)

# Amounts must stay below this magnitude. With at most 2**32 transaction ids,
# no balance needs more than 42 significant digits, well inside LEDGER_PRECISION.
MAX_AMOUNT = Decimal("1e28")
LEDGER_PRECISION = 50

MAX_CLIENT_ID = 2**16 - 1
MAX_TX_ID = 2**32 - 1


def ledger_context() -> Context:
    """Decimal context for balance arithmetic: any rounding is an error."""
    return Context(
        prec=LEDGER_PRECISION,
        traps=[InvalidOperation, DivisionByZero, Overflow, Inexact, Rounded]
    )


def normalize_amount(value: Decimal) -> Decimal:
    """Rescale an amount to exactly AMOUNT_SCALE fractional digits, rounding half away from zero."""
    try:
        with localcontext(Context(prec=LEDGER_PRECISION, traps=[InvalidOperation])):
            return value.quantize(_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Amount {value} cannot be represented with {AMOUNT_SCALE} decimal places") from e


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


class TransactionRecord(BaseModel):
    type: TransactionType = Field(..., description="Transaction type")
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    tx: int = Field(..., ge=0, le=MAX_TX_ID, description="Transaction identifier")
    amount: Optional[Decimal] = Field(
        None,
        description="Transaction amount, only meaningful for deposits and withdrawals"
    )

    model_config = {"frozen": True}

    @field_validator('*', mode='before')
    @classmethod
    def strip_whitespace(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount_input(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, float):
            raise ValueError('Amounts must be given as strings or Decimals, not floats')
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount_scale(cls, v):
        if v is None:
            return v
        if not v.is_finite():
            raise ValueError('Amount must be a finite number')
        v = normalize_amount(v)
        if v.copy_abs() >= MAX_AMOUNT:
            raise ValueError(f'Amount must be below {MAX_AMOUNT:f} in magnitude')
        return v


class Account(BaseModel):
    client: int = Field(..., ge=0, le=MAX_CLIENT_ID, description="Client identifier")
    available: Decimal = Field(default=Decimal(0), description="Funds available for withdrawal or dispute")
    held: Decimal = Field(default=Decimal(0), description="Funds frozen by open disputes")
    locked: bool = Field(default=False, description="Set after a chargeback, never cleared")

    @property
    def total(self) -> Decimal:
        with localcontext(ledger_context()):
            return self.available + self.held


class AccountSnapshot(BaseModel):
    client: int = Field(..., description="Client identifier")
    available: Decimal = Field(..., description="Available balance")
    held: Decimal = Field(..., description="Held balance")
    total: Decimal = Field(..., description="Available plus held")
    locked: bool = Field(..., description="Whether the account is frozen")

    model_config = {"frozen": True}

    @classmethod
    def from_account(cls, account: Account) -> "AccountSnapshot":
        return cls(
            client=account.client,
            available=account.available,
            held=account.held,
            total=account.total,
            locked=account.locked
        )
