#!/usr/bin/env python3
"""
Manual smoke script - fetches accounts, operations and a receipt.

Logs in on the first run (SMS code is read from stdin) and keeps the
session in TINKOFF_SESSIONS_FILE for the next runs.

Usage:
    TINKOFF_PHONE=+79990000000 TINKOFF_PASSWORD=... python scripts/fetch_accounts.py
    python scripts/fetch_accounts.py --invest

Requirements:
    - TINKOFF_PHONE, TINKOFF_PASSWORD (env or .env)
    - TINKOFF_AUTH_MODE=browser needs Chrome or a Selenium Grid
"""

import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

# Add src to path for local development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinkoff_api import Credential, TinkoffClient, build_session_storage, get_settings
from tinkoff_api.core.config import SessionStorageOption
from tinkoff_api.schemas import InvestAccountsIn, InvestOperationsIn, OperationsIn, ShoppingReceiptIn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("fetch_accounts")


class StdinConfirmationProvider:
    async def get_confirmation_code(self, phone: str) -> str:
        line = await asyncio.to_thread(input, f"Enter confirmation code for {phone}: ")
        return line.strip()


async def fetch_common(client: TinkoffClient) -> None:
    accounts = await client.accounts_light_ib()
    logger.info(f"Found {len(accounts)} accounts")

    for account in accounts:
        logger.info(f"Account {account.id}: {account.name} ({account.account_type}, {account.status})")

        operations = await client.operations(
            OperationsIn(account=account.id, start=datetime(2015, 1, 1, tzinfo=UTC))
        )
        logger.info(f"  {len(operations)} operations")

        for operation in operations:
            if not operation.has_shopping_receipt:
                continue

            receipt = await client.shopping_receipt(
                ShoppingReceiptIn(
                    operation_id=operation.id,
                    operation_time=operation.operation_time,
                    id_source_type=operation.id_source_type or None,
                    account=operation.account or None,
                )
            )
            if receipt is not None:
                logger.info(f"  Receipt for {operation.id}: {len(receipt.receipt.items)} items")
            break


async def fetch_invest(client: TinkoffClient) -> None:
    types = await client.invest_operation_types()
    logger.info(f"Found {len(types.operations_types)} invest operation types")

    accounts = await client.invest_accounts(InvestAccountsIn(currency="RUB"))
    logger.info(f"Found {accounts.accounts.count} invest accounts")

    for account in accounts.accounts.items:
        operations = await client.invest_operations(
            InvestOperationsIn(
                from_=datetime(2020, 1, 1, tzinfo=UTC),
                to=datetime.now(UTC),
                limit=10,
                broker_account_id=account.broker_account_id,
            )
        )
        logger.info(f"Invest account '{account.name}': {len(operations.items)} operations")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch Tinkoff accounts")
    parser.add_argument("--invest", action="store_true", help="also fetch invest accounts and operations")
    args = parser.parse_args()

    settings = get_settings()
    if not settings.TINKOFF_PHONE or not settings.TINKOFF_PASSWORD.get_secret_value():
        logger.error("TINKOFF_PHONE and TINKOFF_PASSWORD are required")
        return 1

    if settings.TINKOFF_SESSION_STORAGE == SessionStorageOption.MEMORY:
        logger.warning("Memory session storage: the session will not survive this run")

    credential = Credential(phone=settings.TINKOFF_PHONE, password=settings.TINKOFF_PASSWORD.get_secret_value())
    storage = build_session_storage(settings)

    async with TinkoffClient(settings, credential, StdinConfirmationProvider(), storage) as client:
        await fetch_common(client)
        if args.invest:
            await fetch_invest(client)

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
