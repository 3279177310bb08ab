from .common import (
    Account,
    AccountsLightIbIn,
    Amount,
    Card,
    ConfirmationData,
    ConfirmIn,
    Currency,
    LevelUpIn,
    Operation,
    OperationsIn,
    PasswordSignUpIn,
    PhoneSignUpIn,
    PingIn,
    PingOut,
    Receipt,
    ReceiptItem,
    SessionIn,
    ShoppingReceiptIn,
    ShoppingReceiptOut,
)
from .invest import (
    InvestAccount,
    InvestAccountsIn,
    InvestAccountsOut,
    InvestOperation,
    InvestOperationsIn,
    InvestOperationsOut,
    InvestOperationType,
    InvestOperationTypesIn,
    InvestOperationTypesOut,
)

__all__ = [
    "Account",
    "AccountsLightIbIn",
    "Amount",
    "Card",
    "ConfirmationData",
    "ConfirmIn",
    "Currency",
    "LevelUpIn",
    "Operation",
    "OperationsIn",
    "PasswordSignUpIn",
    "PhoneSignUpIn",
    "PingIn",
    "PingOut",
    "Receipt",
    "ReceiptItem",
    "SessionIn",
    "ShoppingReceiptIn",
    "ShoppingReceiptOut",
    "InvestAccount",
    "InvestAccountsIn",
    "InvestAccountsOut",
    "InvestOperation",
    "InvestOperationsIn",
    "InvestOperationsOut",
    "InvestOperationType",
    "InvestOperationTypesIn",
    "InvestOperationTypesOut",
]
