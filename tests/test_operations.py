"""
Tests for the operation table and local request validation.

Tests cover:
- Required field checks (every field of every operation)
- Status filter checks
- At-least-one-identifier detection
- Path building and payload splitting
"""

import pytest

from iamporter.exceptions import InvalidParameterError
from iamporter.operations import OPERATIONS, PAYMENT_STATUSES, Operation


def _complete_data(operation):
    data = {field: f"test-{field}" for field in operation.required + operation.one_of}
    if operation.statuses is not None:
        data["status"] = "paid"
    return data


REQUIRED_FIELD_CASES = [
    (name, field)
    for name, operation in OPERATIONS.items()
    for field in operation.required
]


class TestOperationTable:
    def test_cancel_operations_share_endpoint(self):
        paths = {OPERATIONS[name].path for name in ("cancel", "cancel_by_imp_uid", "cancel_by_merchant_uid")}

        assert paths == {"/payments/cancel"}

    def test_lookups_treat_not_found_as_result(self):
        lookups = {name for name, operation in OPERATIONS.items() if operation.not_found_ok}

        assert lookups == {
            "find_by_imp_uid",
            "find_by_merchant_uid",
            "find_all_by_merchant_uid",
            "find_all_by_status",
            "get_prepared_payment",
            "get_subscription",
        }

    def test_only_token_request_is_unauthenticated(self):
        unauthenticated = [name for name, operation in OPERATIONS.items() if not operation.authenticated]

        assert unauthenticated == ["get_token"]

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            OPERATIONS["pay_onetime"] = OPERATIONS["pay_foreign"]  # type: ignore[index]

    def test_payment_statuses(self):
        assert PAYMENT_STATUSES == {"all", "ready", "paid", "cancelled", "failed"}


class TestValidate:
    @pytest.mark.parametrize("name", list(OPERATIONS))
    def test_complete_data_passes(self, name):
        operation = OPERATIONS[name]

        operation.validate(_complete_data(operation))

    @pytest.mark.parametrize("name,field", REQUIRED_FIELD_CASES)
    def test_each_required_field(self, name, field):
        operation = OPERATIONS[name]
        data = _complete_data(operation)
        del data[field]

        with pytest.raises(InvalidParameterError) as exc_info:
            operation.validate(data)

        assert exc_info.value.message == f"parameter missing: {field}"

    @pytest.mark.parametrize("value", [None, ""])
    def test_blank_values_are_missing(self, value):
        operation = OPERATIONS["create_prepared_payment"]

        with pytest.raises(InvalidParameterError, match="parameter missing: merchant_uid"):
            operation.validate({"merchant_uid": value, "amount": 500})

    def test_zero_amount_is_present(self):
        OPERATIONS["create_prepared_payment"].validate({"merchant_uid": "order_1", "amount": 0})

    @pytest.mark.parametrize("status", sorted(PAYMENT_STATUSES))
    def test_supported_statuses(self, status):
        OPERATIONS["find_all_by_status"].validate({"status": status})

    def test_unsupported_status(self):
        with pytest.raises(InvalidParameterError) as exc_info:
            OPERATIONS["find_all_by_status"].validate({"status": "PAID"})

        assert exc_info.value.message == "unsupported status value: PAID"

    @pytest.mark.parametrize("status", [["paid"], {"paid"}, 1])
    def test_non_string_status(self, status):
        with pytest.raises(InvalidParameterError, match="unsupported status value"):
            OPERATIONS["find_all_by_status"].validate({"status": status})

    def test_missing_status_reported_as_missing(self):
        with pytest.raises(InvalidParameterError, match="parameter missing: status"):
            OPERATIONS["find_all_by_status"].validate({})

    def test_identifier_not_checked_by_validate(self):
        OPERATIONS["cancel"].validate({"amount": 1000})

    def test_lacks_identifier(self):
        operation = OPERATIONS["cancel"]

        assert not operation.lacks_identifier({"imp_uid": "imp_1"})
        assert not operation.lacks_identifier({"merchant_uid": "order_1"})
        assert operation.lacks_identifier({"imp_uid": "", "merchant_uid": None, "amount": 1000})
        assert operation.identifier_message == "either imp_uid or merchant_uid must be specified"

    def test_operations_without_one_of_never_lack_identifier(self):
        assert not OPERATIONS["cancel_by_imp_uid"].lacks_identifier({})

    def test_prepared_payment_lookup_has_no_local_requirement(self):
        OPERATIONS["get_prepared_payment"].validate({})


class TestBuild:
    def test_path_fields_removed_from_payload(self):
        path, payload = OPERATIONS["find_all_by_merchant_uid"].build(
            {"merchant_uid": "order_1", "status": "paid", "page": 2}
        )

        assert path == "/payments/findAll/order_1/paid"
        assert payload == {"page": 2}

    def test_none_values_dropped(self):
        path, payload = OPERATIONS["cancel"].build(
            {"imp_uid": "imp_1", "merchant_uid": None, "reason": "고객 요청"}
        )

        assert path == "/payments/cancel"
        assert payload == {"imp_uid": "imp_1", "reason": "고객 요청"}

    def test_path_values_are_quoted(self):
        path, _ = OPERATIONS["get_subscription"].build({"customer_uid": "user 1/card"})

        assert path == "/subscribe/customers/user%201%2Fcard"

    def test_path_fields(self):
        operation = Operation(name="test", method="GET", path="/a/{x}/b/{y}")

        assert operation.path_fields == ("x", "y")
