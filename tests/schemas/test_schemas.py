"""
Unit tests for wire formats and descriptor parameter encoding.
"""

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from tinkoff_api.schemas import (
    ConfirmationData,
    ConfirmIn,
    InvestAccountsOut,
    InvestOperationsIn,
    InvestOperationsOut,
    LevelUpIn,
    Operation,
    OperationsIn,
    PasswordSignUpIn,
    PingIn,
    SessionIn,
    ShoppingReceiptIn,
    ShoppingReceiptOut,
)
from tinkoff_api.schemas.types import moscow_timezone, to_invest_timestamp
from tinkoff_api.services.exchange import Auth, CommonResponse


class TestDateFormats:
    def test_milliseconds(self) -> None:
        operation = Operation.model_validate({"id": "1", "operationTime": {"milliseconds": 1700000000123}})

        assert operation.operation_time == datetime(2023, 11, 14, 22, 13, 20, 123000, tzinfo=UTC)

    def test_milliseconds_without_value(self) -> None:
        with pytest.raises(ValidationError):
            Operation.model_validate({"id": "1", "operationTime": {}})

    def test_seconds(self) -> None:
        out = ShoppingReceiptOut.model_validate({"receipt": {"dateTime": 1700000000}})

        assert out.receipt.date_time == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)

    def test_datetime_with_offset(self) -> None:
        out = InvestOperationsOut.model_validate(
            {"items": [{"id": "op-1", "date": "2023-11-14T22:13:20.123+03:00"}]}
        )

        date = out.items[0].date
        assert date.utcoffset() == timedelta(hours=3)
        assert date.microsecond == 123000

    def test_datetime_without_offset_rejected(self) -> None:
        with pytest.raises(ValidationError):
            InvestOperationsOut.model_validate({"items": [{"id": "op-1", "date": "2023-11-14T22:13:20"}]})

    def test_moscow_date(self) -> None:
        out = InvestAccountsOut.model_validate(
            {"accounts": {"count": 1, "list": [{"brokerAccountId": "2000", "openedDate": "2021-03-15"}]}}
        )

        opened = out.accounts.items[0].opened_date
        assert opened == datetime(2021, 3, 15, tzinfo=moscow_timezone())
        assert opened.astimezone(UTC) == datetime(2021, 3, 14, 21, 0, tzinfo=UTC)


class TestInvestTimestamp:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC), "2024-05-06T07:08:09Z"),
            (datetime(2024, 5, 6, 7, 8, 9, 123000, tzinfo=UTC), "2024-05-06T07:08:09.123Z"),
            (datetime(2024, 5, 6, 7, 8, 9, 500000, tzinfo=UTC), "2024-05-06T07:08:09.5Z"),
            (datetime(2024, 5, 6, 10, 8, 9, tzinfo=timezone(timedelta(hours=3))), "2024-05-06T07:08:09Z"),
        ],
    )
    def test_format(self, value, expected) -> None:
        assert to_invest_timestamp(value) == expected


class TestParams:
    def test_unset_fields_omitted(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)

        params = OperationsIn(account="5001", start=start).params()

        assert params == {"account": "5001", "start": "1704067200000"}

    def test_camel_case_and_bool(self) -> None:
        params = OperationsIn(
            account="5001",
            start=datetime(2024, 1, 1, tzinfo=UTC),
            end=datetime(2024, 2, 1, tzinfo=UTC),
            tranche_creation_allowed=True,
            loyalty_payment_status="available",
        ).params()

        assert params["end"] == "1706745600000"
        assert params["trancheCreationAllowed"] == "true"
        assert params["loyaltyPaymentStatus"] == "available"

    def test_nested_value_is_compact_json(self) -> None:
        params = ConfirmIn(
            initial_operation_ticket="ticket",
            confirmation_data=ConfirmationData(sms_by_id="1234"),
        ).params()

        assert params["confirmationData"] == '{"SMSBYID":"1234"}'
        assert params["initialOperation"] == "sign_up"

    def test_receipt_operation_time(self) -> None:
        params = ShoppingReceiptIn(
            operation_id="op-1",
            operation_time=datetime(2024, 1, 1, tzinfo=UTC),
        ).params()

        assert params == {"operationId": "op-1", "operationTime": "1704067200000"}

    def test_invest_from_alias(self) -> None:
        params = InvestOperationsIn(from_=datetime(2024, 1, 1, tzinfo=UTC), cursor="abc").params()

        assert params == {"from": "2024-01-01T00:00:00Z", "cursor": "abc"}

    def test_password_not_in_repr(self) -> None:
        assert "hunter2" not in repr(PasswordSignUpIn(password="hunter2"))


class TestDescriptorMetadata:
    def test_auth_levels(self) -> None:
        assert SessionIn.auth == Auth.NONE
        assert PingIn.auth == Auth.CHECK
        assert LevelUpIn.auth == Auth.CHECK
        assert OperationsIn.auth == Auth.FORCE
        assert InvestOperationsIn.auth == Auth.FORCE

    def test_envelope_defaults(self) -> None:
        response = CommonResponse.model_validate_json(json.dumps({"resultCode": "OK"}))

        assert response.error_message == ""
        assert response.payload is None
        assert response.operation_ticket == ""

    def test_operations_payload_is_typed(self) -> None:
        out = OperationsIn.adapter().validate_python([{"id": "op-1", "hasShoppingReceipt": True}])

        assert isinstance(out[0], Operation)
        assert out[0].has_shopping_receipt

    def test_receipt_items_snake_case(self) -> None:
        out = ShoppingReceiptOut.model_validate(
            {"receipt": {"items": [{"name": "Milk", "good_id": 42, "ndsRate": 10, "sum": 89.9}]}}
        )

        item = out.receipt.items[0]
        assert (item.name, item.good_id, item.nds_rate, item.sum) == ("Milk", 42, 10, 89.9)
