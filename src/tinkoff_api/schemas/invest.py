"""Descriptors and payloads of the invest gateway."""

from datetime import datetime
from typing import Any, ClassVar

from pydantic import Field, field_serializer

from ..services.exchange import InvestExchange
from .common import TinkoffModel
from .types import DateTimeMilliOffset, MoscowDate, to_invest_timestamp

# ============================================================================
# Operation types
# ============================================================================


class InvestOperationType(TinkoffModel):
    category: str = ""
    operation_name: str = ""
    operation_type: str = ""


class InvestOperationTypesOut(TinkoffModel):
    operations_types: list[InvestOperationType] = Field(default_factory=list)


class InvestOperationTypesIn(InvestExchange):
    path: ClassVar[str] = "/invest-gw/ca-operations/api/v1/operations/types"
    out: ClassVar[Any] = InvestOperationTypesOut


# ============================================================================
# Accounts
# ============================================================================


class InvestAmount(TinkoffModel):
    currency: str = ""
    value: float = 0.0


class InvestTotals(TinkoffModel):
    expected_average_yield: InvestAmount | None = None
    expected_average_yield_relative: float = 0.0
    expected_yield: InvestAmount | None = None
    expected_yield_per_day: InvestAmount | None = None
    expected_yield_per_day_relative: float = 0.0
    expected_yield_relative: float = 0.0
    total_amount: InvestAmount | None = None


class InvestAccount(InvestTotals):
    broker_account_id: str
    auto_app: bool = False
    broker_account_type: str = ""
    buy_by_default: bool = False
    is_visible: bool = False
    name: str = ""
    opened_date: MoscowDate | None = None
    order: int = 0
    organization: str = ""
    status: str = ""


class InvestAccounts(TinkoffModel):
    count: int = 0
    items: list[InvestAccount] = Field(default_factory=list, alias="list")


class InvestAccountsOut(TinkoffModel):
    accounts: InvestAccounts = Field(default_factory=InvestAccounts)
    totals: InvestTotals = Field(default_factory=InvestTotals)


class InvestAccountsIn(InvestExchange):
    path: ClassVar[str] = "/invest-gw/invest-portfolio/portfolios/accounts"
    out: ClassVar[Any] = InvestAccountsOut

    currency: str = "RUB"


# ============================================================================
# Operations
# ============================================================================


class Trade(TinkoffModel):
    date: DateTimeMilliOffset | None = None
    num: str = ""
    price: InvestAmount | None = None
    quantity: int = 0


class TradesInfo(TinkoffModel):
    trades: list[Trade] = Field(default_factory=list)
    trades_size: int = 0


class InvestOperation(TinkoffModel):
    id: str
    account_id: str = ""
    account_name: str = ""
    asset_uid: str = ""
    best_executed: bool = False
    broker_account_id: str = ""
    class_code: str = ""
    cursor: str = ""
    date: DateTimeMilliOffset | None = None
    description: str = ""
    done_rest: int = 0
    instrument_type: str = ""
    instrument_uid: str = ""
    internal_id: str = ""
    is_blocked_trade_clearing_account: bool = False
    isin: str = ""
    name: str = ""
    payment: InvestAmount | None = None
    payment_eur: InvestAmount | None = None
    payment_rub: InvestAmount | None = None
    payment_usd: InvestAmount | None = None
    position_uid: str = ""
    price: InvestAmount | None = None
    quantity: int = 0
    short_description: str = ""
    show_name: str = ""
    status: str = ""
    ticker: str = ""
    trades_info: TradesInfo | None = None
    type: str = ""
    yield_relative: float = 0.0


class InvestOperationsOut(TinkoffModel):
    has_next: bool = False
    items: list[InvestOperation] = Field(default_factory=list)
    next_cursor: str = ""


class InvestOperationsIn(InvestExchange):
    path: ClassVar[str] = "/invest-gw/ca-operations/api/v1/user/operations"
    out: ClassVar[Any] = InvestOperationsOut

    from_: datetime | None = Field(default=None, alias="from")
    to: datetime | None = None
    broker_account_id: str | None = None
    overnights_disabled: bool | None = None
    limit: int | None = None
    cursor: str | None = None

    @field_serializer("from_", "to")
    def serialize_timestamp(self, value: datetime | None) -> str | None:
        return to_invest_timestamp(value) if value is not None else None
