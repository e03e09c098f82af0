"""
Operation descriptors for the Iamport REST API.

Each public client method maps to exactly one Operation: the HTTP method,
the path template, the required fields and how the payload is encoded.
Validation happens here, before a token is requested or anything is sent.

Usage:
    from iamporter.operations import OPERATIONS

    operation = OPERATIONS["pay_onetime"]
    operation.validate(data)  # raises InvalidParameterError
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal, Mapping
from urllib.parse import quote

from .exceptions import InvalidParameterError

PAYMENT_STATUSES: frozenset[str] = frozenset({"all", "ready", "paid", "cancelled", "failed"})


@dataclass(frozen=True)
class Operation:
    """
    Static metadata for one API endpoint.

    Attributes:
        name: Operation name (matches the client method name)
        method: HTTP method
        path: Path template, e.g. "/payments/{imp_uid}"
        required: Fields that must be present, in reporting order
        one_of: At least one of these fields must be present
        statuses: Allowed values of the "status" field (None = unchecked)
        encoding: "json" or "form" body, or "query" for GET/DELETE
        not_found_ok: HTTP 404 is an empty result instead of an error
        authenticated: Whether the call needs an access token
    """

    name: str
    method: Literal["GET", "POST", "DELETE"]
    path: str
    required: tuple[str, ...] = ()
    one_of: tuple[str, ...] = ()
    statuses: frozenset[str] | None = None
    encoding: Literal["json", "form", "query"] = "json"
    not_found_ok: bool = False
    authenticated: bool = True

    @property
    def path_fields(self) -> tuple[str, ...]:
        return tuple(
            field for _, field, _, _ in string.Formatter().parse(self.path) if field
        )

    def missing_fields(self, data: dict[str, Any]) -> list[str]:
        return [field for field in self.required if _is_blank(data.get(field))]

    def validate(self, data: dict[str, Any]) -> None:
        """
        Check request data against this operation's local rules.

        The one_of identifier rule is not checked here; see lacks_identifier.

        Raises:
            InvalidParameterError: On the first rule that fails
        """
        missing = self.missing_fields(data)
        if missing:
            raise InvalidParameterError(f"parameter missing: {', '.join(missing)}")

        if self.statuses is not None:
            status = data.get("status")
            if not isinstance(status, str) or status not in self.statuses:
                raise InvalidParameterError(f"unsupported status value: {status}")

    def lacks_identifier(self, data: dict[str, Any]) -> bool:
        """True if the operation needs one of ``one_of`` and none is given."""
        return bool(self.one_of) and all(_is_blank(data.get(field)) for field in self.one_of)

    @property
    def identifier_message(self) -> str:
        return f"either {' or '.join(self.one_of)} must be specified"

    def build(self, data: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """
        Split request data into the request path and the remaining payload.

        Path fields are URL-quoted into the template and removed from the
        payload. Fields whose value is None are dropped.

        Returns:
            (path, payload) tuple
        """
        path_fields = self.path_fields
        path = self.path.format(
            **{field: quote(str(data[field]), safe="") for field in path_fields}
        )
        payload = {
            key: value
            for key, value in data.items()
            if key not in path_fields and value is not None
        }
        return path, payload


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


_OPERATIONS: tuple[Operation, ...] = (
    Operation(
        name="get_token",
        method="POST",
        path="/users/getToken",
        required=("imp_key", "imp_secret"),
        authenticated=False,
    ),
    # Lookups: a missing payment is an empty result, not an error
    Operation(
        name="find_by_imp_uid",
        method="GET",
        path="/payments/{imp_uid}",
        required=("imp_uid",),
        encoding="query",
        not_found_ok=True,
    ),
    Operation(
        name="find_by_merchant_uid",
        method="GET",
        path="/payments/find/{merchant_uid}",
        required=("merchant_uid",),
        encoding="query",
        not_found_ok=True,
    ),
    Operation(
        name="find_all_by_merchant_uid",
        method="GET",
        path="/payments/findAll/{merchant_uid}/{status}",
        required=("merchant_uid", "status"),
        statuses=PAYMENT_STATUSES,
        encoding="query",
        not_found_ok=True,
    ),
    Operation(
        name="find_all_by_status",
        method="GET",
        path="/payments/status/{status}",
        required=("status",),
        statuses=PAYMENT_STATUSES,
        encoding="query",
        not_found_ok=True,
    ),
    # Prepared payments
    Operation(
        name="create_prepared_payment",
        method="POST",
        path="/payments/prepare",
        required=("merchant_uid", "amount"),
        encoding="form",
    ),
    Operation(
        name="get_prepared_payment",
        method="GET",
        path="/payments/prepare",
        encoding="query",
        not_found_ok=True,
    ),
    # Charges
    Operation(
        name="pay_onetime",
        method="POST",
        path="/subscribe/payments/onetime",
        required=("merchant_uid", "amount", "card_number", "expiry", "birth"),
    ),
    Operation(
        name="pay_subscription",
        method="POST",
        path="/subscribe/payments/again",
        required=("customer_uid", "merchant_uid", "amount"),
    ),
    Operation(
        name="pay_foreign",
        method="POST",
        path="/subscribe/payments/foreign",
        required=("merchant_uid", "amount", "card_number", "expiry"),
    ),
    # Cancellations: a missing payment is an error
    Operation(
        name="cancel_by_imp_uid",
        method="POST",
        path="/payments/cancel",
        required=("imp_uid",),
        encoding="form",
    ),
    Operation(
        name="cancel_by_merchant_uid",
        method="POST",
        path="/payments/cancel",
        required=("merchant_uid",),
        encoding="form",
    ),
    Operation(
        name="cancel",
        method="POST",
        path="/payments/cancel",
        one_of=("imp_uid", "merchant_uid"),
        encoding="form",
    ),
    # Billing keys
    Operation(
        name="create_subscription",
        method="POST",
        path="/subscribe/customers/{customer_uid}",
        required=("customer_uid", "card_number", "expiry", "birth"),
    ),
    Operation(
        name="get_subscription",
        method="GET",
        path="/subscribe/customers/{customer_uid}",
        required=("customer_uid",),
        encoding="query",
        not_found_ok=True,
    ),
    Operation(
        name="delete_subscription",
        method="DELETE",
        path="/subscribe/customers/{customer_uid}",
        required=("customer_uid",),
        encoding="query",
    ),
    # Virtual accounts
    Operation(
        name="create_vbank",
        method="POST",
        path="/vbanks",
        required=("merchant_uid", "amount", "vbank_code", "vbank_due", "vbank_holder"),
    ),
)

OPERATIONS: Mapping[str, Operation] = MappingProxyType(
    {operation.name: operation for operation in _OPERATIONS}
)
