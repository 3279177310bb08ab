"""Descriptors and payloads of the primary (common) API surface."""

from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from ..services.exchange import Auth, CommonExchange, CommonResponse
from .types import Milliseconds, Seconds, to_unix_millis


class TinkoffModel(BaseModel):
    """Base for response payloads: camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ============================================================================
# Authentication
# ============================================================================


class SessionIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/session"
    out: ClassVar[Any] = str
    auth: ClassVar[Auth] = Auth.NONE


class PingOut(TinkoffModel):
    access_level: str = ""


class PingIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/ping"
    out: ClassVar[Any] = PingOut
    auth: ClassVar[Auth] = Auth.CHECK


class PhoneSignUpIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/sign_up"
    auth: ClassVar[Auth] = Auth.CHECK
    expected_result_code: ClassVar[str] = "WAITING_CONFIRMATION"

    phone: str

    def decode(self, envelope: CommonResponse) -> str:
        """The confirmation ticket travels in the envelope, not the payload."""
        return envelope.operation_ticket


class PasswordSignUpIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/sign_up"
    auth: ClassVar[Auth] = Auth.CHECK

    password: str

    def __repr__(self) -> str:
        return "PasswordSignUpIn(password=***)"


class ConfirmationData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sms_by_id: str = Field(alias="SMSBYID")


class ConfirmIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/confirm"
    auth: ClassVar[Auth] = Auth.CHECK

    initial_operation: str = "sign_up"
    initial_operation_ticket: str
    confirmation_data: ConfirmationData


class LevelUpIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/level_up"
    auth: ClassVar[Auth] = Auth.CHECK


# ============================================================================
# Accounts
# ============================================================================


class Currency(TinkoffModel):
    code: int = 0
    name: str = ""
    str_code: str = ""


class Amount(TinkoffModel):
    currency: Currency = Field(default_factory=Currency)
    value: float = 0.0


class MultiCardCluster(TinkoffModel):
    id: str = ""


class Card(TinkoffModel):
    id: str
    creation_date: Milliseconds | None = None
    expiration: Milliseconds | None = None
    frozen_card: bool = False
    has_wrong_pins: bool = False
    is_embossed: str = ""
    is_payment_device: bool = False
    is_virtual: str = ""
    multi_card_cluster: MultiCardCluster | None = None
    name: str = ""
    payment_system: str = ""
    pin_sec: bool = False
    primary: bool = False
    status: str = ""
    status_code: str = ""
    ucid: str = ""
    value: str = ""


class Loyalty(TinkoffModel):
    accrual_bonuses: float = 0.0
    available_bonuses: float = 0.0
    cashback_program: bool = False
    core_group: str = ""
    linked_bonuses: str = ""
    loyalty_points_id: int = 0
    program_code: str = ""
    total_available_bonuses: float = 0.0


class Account(TinkoffModel):
    id: str
    account_type: str = ""
    cards: list[Card] = Field(default_factory=list)
    client_unverified_flag: str = ""
    creation_date: Milliseconds | None = None
    credit_limit: Amount | None = None
    currency: Currency | None = None
    current_minimal_payment: Amount | None = None
    debt_amount: Amount | None = None
    due_date: Milliseconds | None = None
    hidden: bool = False
    last_statement_date: Milliseconds | None = None
    loyalty: Loyalty | None = None
    loyalty_id: str = ""
    money_amount: Amount | None = None
    name: str = ""
    next_statement_date: Milliseconds | None = None
    part_number: str = ""
    past_due_debt: Amount | None = None
    shared_by_me_flag: bool = False
    status: str = ""


class AccountsLightIbIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/accounts_light_ib"
    out: ClassVar[Any] = list[Account]


# ============================================================================
# Operations
# ============================================================================


class Category(TinkoffModel):
    id: str = ""
    name: str = ""


class Location(TinkoffModel):
    latitude: float = 0.0
    longitude: float = 0.0


class LoyaltyAmount(TinkoffModel):
    loyalty: str = ""
    loyalty_imagine: bool = False
    loyalty_points_id: int = 0
    loyalty_points_name: str = ""
    loyalty_program_id: str = ""
    loyalty_steps: int = 0
    name: str = ""
    partial_compensation: bool = False
    value: float = 0.0


class LoyaltyBonus(TinkoffModel):
    amount: LoyaltyAmount | None = None
    compensation_type: str = ""
    description: str = ""
    loyalty_type: str = ""


class Region(TinkoffModel):
    city: str = ""
    country: str = ""


class Merchant(TinkoffModel):
    name: str = ""
    region: Region | None = None


class Operation(TinkoffModel):
    id: str
    account: str = ""
    account_amount: Amount | None = None
    amount: Amount | None = None
    authorization_id: str = ""
    card: str = ""
    card_number: str = ""
    card_present: bool = False
    cashback: float = 0.0
    cashback_amount: Amount | None = None
    category: Category | None = None
    compensation: str = ""
    debiting_time: Milliseconds | None = None
    description: str = ""
    group: str = ""
    has_shopping_receipt: bool = False
    has_statement: bool = False
    id_source_type: str = ""
    installment_status: str = ""
    is_dispute: bool = False
    is_external_card: bool = False
    is_hce: bool = False
    is_inner: bool = False
    is_offline: bool = False
    is_suspicious: bool = False
    is_templatable: bool = False
    locations: list[Location] = Field(default_factory=list)
    loyalty_bonus: list[LoyaltyBonus] = Field(default_factory=list)
    mcc: int = 0
    mcc_string: str = ""
    merchant: Merchant | None = None
    operation_time: Milliseconds | None = None
    operation_transferred: bool = False
    point_of_sale_id: int = 0
    pos_id: str = ""
    status: str = ""
    tranche_creation_allowed: bool = False
    type: str = ""
    type_serno: int = 0
    ucid: str = ""
    virtual_payment_type: int = 0


class OperationsIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/operations"
    out: ClassVar[Any] = list[Operation]

    account: str
    start: datetime
    end: datetime | None = None
    operation_id: str | None = None
    tranche_creation_allowed: bool | None = None
    loyalty_payment_program: str | None = None
    loyalty_payment_status: str | None = None

    @field_serializer("start", "end")
    def serialize_timestamp(self, value: datetime | None) -> int | None:
        return to_unix_millis(value) if value is not None else None


# ============================================================================
# Shopping receipts
# ============================================================================


class ReceiptItem(BaseModel):
    """Receipt line; the provider sends these keys in snake_case."""

    model_config = ConfigDict(extra="ignore")

    brand_id: int | None = None
    good_id: int | None = None
    name: str = ""
    nds: int = 0
    nds_rate: int = Field(default=0, alias="ndsRate")
    price: float = 0.0
    quantity: float = 0.0
    sum: float = 0.0


class Receipt(TinkoffModel):
    applied_taxation_type: int = 0
    cash_total_sum: float = 0.0
    credit_sum: float = 0.0
    date_time: Seconds | None = None
    ecash_total_sum: float = 0.0
    fiscal_document_number: int = 0
    fiscal_drive_number: int = 0
    fiscal_drive_number_string: str = ""
    fiscal_sign: int = 0
    items: list[ReceiptItem] = Field(default_factory=list)
    kkt_reg_id: str = ""
    operation_type: int = 0
    operator: str = ""
    prepaid_sum: float = 0.0
    provision_sum: float = 0.0
    request_number: int = 0
    retail_place: str = ""
    retail_place_address: str = ""
    shift_number: int = 0
    taxation_type: int = 0
    total_sum: float = 0.0
    user: str = ""
    user_inn: str = ""


class ShoppingReceiptOut(TinkoffModel):
    operation_date_time: Milliseconds | None = None
    operation_id: str = ""
    receipt: Receipt


class ShoppingReceiptIn(CommonExchange):
    path: ClassVar[str] = "/common/v1/shopping_receipt"
    out: ClassVar[Any] = ShoppingReceiptOut

    operation_id: str
    operation_time: datetime | None = None
    id_source_type: str | None = None
    account: str | None = None

    @field_serializer("operation_time")
    def serialize_timestamp(self, value: datetime | None) -> int | None:
        return to_unix_millis(value) if value is not None else None
