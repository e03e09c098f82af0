"""
Iamport REST API Client.

This module provides a client for the Iamport payment gateway, covering
token issuance, payment lookup, prepared payments, card charges (one-time,
billing key, foreign card), cancellation, billing keys and virtual accounts.

Every call goes through the same pipeline: validate the request data
locally, attach a cached access token, send the request, then map the
Iamport envelope ``{"code", "message", "response"}`` to an IamportResponse
or a typed IamportError.

Usage:
    from iamporter.client import IamportClient

    client = IamportClient()

    # Lookup (a missing payment is not an error)
    result = client.find_by_imp_uid("imp_123412341234")
    if result.found:
        print(result.data["status"])

    # Charge a card once
    result = client.pay_onetime({
        "merchant_uid": "order-0001",
        "amount": 5000,
        "card_number": "1234-1234-1234-1234",
        "expiry": "2029-12",
        "birth": "920220",
    })

    # Cancel (a missing payment is an error)
    result = client.cancel_by_imp_uid("imp_123412341234", reason="고객 요청")

Calls are blocking. From async code, run each one in a worker thread:

    from asgiref.sync import sync_to_async

    result = await sync_to_async(client.find_by_imp_uid)("imp_123412341234")

Calls share no lock, so several may run at once; the cached token is
replaced last-write-wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal, Mapping, TypedDict

import requests
from django.conf import settings

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    IamportConnectionError,
    IamportError,
    IamportResponseError,
)
from .operations import OPERATIONS, Operation
from .token import TokenManager
from .utils import mask_card_number, to_timestamp

logger: logging.Logger = logging.getLogger(__name__)

# Raised for any HTTP 401 on an authenticated call, whatever the body says
AUTHENTICATION_FAILED_MESSAGE = "아임포트 API 인증에 실패하였습니다."

# Public Iamport test credentials
DEFAULT_API_KEY = "imp_apikey"
DEFAULT_API_SECRET = (
    "ekKoeW8RyKuT0zgaZsUtXXTLQ4AhPFW3ZGseDA6bkA5lamv9OqDMnxyeB9wqOsuO9W3Mx9YSJ4dTqJ3f"
)
DEFAULT_API_URL = "https://api.iamport.kr"

PaymentStatus = Literal["all", "ready", "paid", "cancelled", "failed"]


# ============================================================
# TypedDict definitions for API responses
# ============================================================


class TokenData(TypedDict, total=False):
    """Response data from POST /users/getToken."""

    access_token: str
    now: int
    expired_at: int


class PaymentData(TypedDict, total=False):
    """Payment object returned by lookups, charges and cancellations."""

    imp_uid: str
    merchant_uid: str
    pay_method: str
    pg_provider: str
    amount: int
    cancel_amount: int
    currency: str
    status: str
    card_name: str
    card_number: str
    fail_reason: str
    cancel_reason: str
    paid_at: int
    failed_at: int
    cancelled_at: int
    receipt_url: str
    customer_uid: str


class PaymentListData(TypedDict, total=False):
    """Paginated payment list from the findAll/status endpoints."""

    total: int
    previous: int
    next: int
    list: list[PaymentData]


class PreparedPaymentData(TypedDict, total=False):
    """Prepared (pre-registered) payment amount."""

    merchant_uid: str
    amount: int


class BillingKeyData(TypedDict, total=False):
    """Billing key registered for subscription charges."""

    customer_uid: str
    pg_provider: str
    card_name: str
    card_number: str
    inserted: int
    updated: int


@dataclass(frozen=True)
class IamportResponse:
    """
    Successful Iamport API result.

    A lookup that finds nothing is still a success: ``data`` is None and
    ``message`` holds Iamport's "not found" text. Use ``found`` to tell the
    two apart.

    Attributes:
        status: HTTP status code
        code: Iamport envelope code (0 on success)
        message: Iamport message (often None on success)
        data: Envelope ``response`` payload
        raw: Full response body
    """

    status: int
    code: int
    message: str | None
    data: Any
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def found(self) -> bool:
        return self.data is not None


class IamportClient:
    """
    Iamport API Client.

    Configuration (in Django settings):
        IAMPORTER_API_KEY: REST API key (default: Iamport test key)
        IAMPORTER_API_SECRET: REST API secret (default: Iamport test secret)
        IAMPORTER_API_URL: API base URL (default: "https://api.iamport.kr")
        IAMPORTER_TIMEOUT: Request timeout in seconds (default: 30)
        IAMPORTER_TOKEN_LEEWAY: Seconds before expiry to refresh the token (default: 0)

    Attributes:
        api_key: REST API key
        api_secret: REST API secret
        api_url: API base URL
        timeout: Request timeout in seconds
        tokens: Access token cache
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        api_url: str | None = None,
        timeout: int | None = None,
        token_leeway: int | None = None,
    ):
        """
        Initialize Iamport client.

        Args:
            api_key: Override API key (default: from settings)
            api_secret: Override API secret (default: from settings)
            api_url: Override API URL (default: from settings)
            timeout: Request timeout in seconds (default: from settings)
            token_leeway: Refresh the token this many seconds early

        Raises:
            ConfigurationError: If the API key or secret is empty
        """
        self.api_key = (
            api_key if api_key is not None else getattr(settings, "IAMPORTER_API_KEY", DEFAULT_API_KEY)
        )
        self.api_secret = (
            api_secret
            if api_secret is not None
            else getattr(settings, "IAMPORTER_API_SECRET", DEFAULT_API_SECRET)
        )
        self.api_url = (
            api_url if api_url is not None else getattr(settings, "IAMPORTER_API_URL", DEFAULT_API_URL)
        ).rstrip("/")
        self.timeout = timeout if timeout is not None else getattr(settings, "IAMPORTER_TIMEOUT", 30)

        if not self.api_key:
            raise ConfigurationError("IAMPORTER_API_KEY is not configured")
        if not self.api_secret:
            raise ConfigurationError("IAMPORTER_API_SECRET is not configured")

        if token_leeway is None:
            token_leeway = getattr(settings, "IAMPORTER_TOKEN_LEEWAY", 0)
        self.tokens = TokenManager(self._issue_token, leeway=token_leeway)

    # ============================================================
    # Request pipeline
    # ============================================================

    def _request(self, name: str, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        Validate, authenticate, send and map one API call.

        Args:
            name: Operation name (key of OPERATIONS)
            data: Request fields, including path fields

        Returns:
            IamportResponse on success

        Raises:
            InvalidParameterError: On local validation failure (nothing is sent)
            AuthenticationError: On rejected credentials or token
            IamportResponseError: On a non-zero envelope code, or when none of
                the operation's identifiers was given
            IamportConnectionError: On network failure
        """
        operation = OPERATIONS[name]
        data = dict(data or {})
        operation.validate(data)

        path, payload = operation.build(data)
        headers = {"Accept": "application/json"}
        if operation.authenticated:
            headers["Authorization"] = f"Bearer {self.tokens.get_token()}"

        response = self._send(operation, path, payload, headers)
        return self._handle_response(
            operation, response, identified=not operation.lacks_identifier(data)
        )

    def _send(
        self,
        operation: Operation,
        path: str,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> requests.Response:
        """
        Send the HTTP request.

        Raises:
            IamportConnectionError: On timeout or any other network failure
        """
        url = f"{self.api_url}{path}"

        kwargs: dict[str, Any] = {}
        if operation.encoding == "query":
            kwargs["params"] = payload
        elif operation.encoding == "form":
            kwargs["data"] = payload
        else:
            kwargs["json"] = payload

        logger.info(
            "Iamport API request",
            extra={
                "operation": operation.name,
                "method": operation.method,
                "endpoint": path,
            },
        )

        try:
            return requests.request(
                operation.method,
                url,
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Iamport API timeout", extra={"operation": operation.name, "endpoint": path})
            raise IamportConnectionError(
                message="API request timeout",
                code="TIMEOUT",
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                "Iamport API request failed",
                extra={"operation": operation.name, "endpoint": path, "error": str(e)},
            )
            raise IamportConnectionError(
                message=f"API request failed: {e}",
                code="REQUEST_ERROR",
            ) from e

    def _handle_response(
        self,
        operation: Operation,
        response: requests.Response,
        identified: bool = True,
    ) -> IamportResponse:
        """
        Map HTTP status and the Iamport envelope to a result or an error.

        A request sent without any of the operation's identifiers never maps
        to a success. Iamport's own message is kept when it gives one.
        """
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = None

        envelope = body if isinstance(body, dict) and "code" in body else None
        code = envelope["code"] if envelope else ""
        message = envelope.get("message") if envelope else None

        if not operation.authenticated and (status >= 400 or code != 0):
            # Credential failures keep Iamport's own wording
            logger.error(
                "Iamport token request rejected",
                extra={"status": status, "code": code, "error_message": message},
            )
            raise AuthenticationError(
                message=message or AUTHENTICATION_FAILED_MESSAGE,
                code=code,
                status=status,
                response=body,
            )

        if status == 401:
            self.tokens.invalidate()
            logger.error(
                "Iamport API authentication failed",
                extra={"operation": operation.name, "status": status},
            )
            raise AuthenticationError(
                message=AUTHENTICATION_FAILED_MESSAGE,
                code=code,
                status=status,
                response=body,
            )

        if not identified:
            logger.error(
                "Iamport API request without identifier",
                extra={"operation": operation.name, "status": status, "code": code},
            )
            raise IamportResponseError(
                message=message if code not in ("", 0) and message else operation.identifier_message,
                code=code,
                status=status,
                response=body,
            )

        if envelope is None:
            logger.error(
                "Iamport API returned an invalid response",
                extra={"operation": operation.name, "status": status},
            )
            raise IamportResponseError(
                message=f"invalid response from Iamport API (HTTP {status})",
                status=status,
                response=body,
            )

        if status == 404 and operation.not_found_ok:
            logger.debug(
                "Iamport API lookup found nothing",
                extra={"operation": operation.name, "error_message": message},
            )
            return IamportResponse(status=status, code=code, message=message, data=None, raw=envelope)

        if code != 0 or status >= 400:
            logger.error(
                "Iamport API error",
                extra={
                    "operation": operation.name,
                    "status": status,
                    "code": code,
                    "error_message": message,
                },
            )
            raise IamportResponseError(
                message=message or f"Iamport API error (HTTP {status})",
                code=code,
                status=status,
                response=envelope,
            )

        logger.info(
            "Iamport API success",
            extra={"operation": operation.name, "status": status},
        )
        return IamportResponse(
            status=status,
            code=code,
            message=message,
            data=envelope.get("response"),
            raw=envelope,
        )

    def _issue_token(self) -> tuple[str, int]:
        result = self._request(
            "get_token",
            {"imp_key": self.api_key, "imp_secret": self.api_secret},
        )
        data: TokenData = result.data or {}
        if not data.get("access_token"):
            raise AuthenticationError(
                message=result.message or AUTHENTICATION_FAILED_MESSAGE,
                code=result.code,
                status=result.status,
                response=result.raw,
            )
        return data["access_token"], data.get("expired_at", 0)

    # ============================================================
    # Token
    # ============================================================

    def get_token(self, force: bool = False) -> str:
        """
        Return the cached access token, requesting a new one if expired.

        Args:
            force: Request a new token even if the cached one is valid

        Raises:
            AuthenticationError: If Iamport rejects the API key or secret
        """
        return self.tokens.get_token(force=force)

    # ============================================================
    # Payment lookup
    # ============================================================

    def find_by_imp_uid(self, imp_uid: str) -> IamportResponse:
        """
        GET /payments/{imp_uid}

        Returns:
            IamportResponse; ``data`` is None if no such payment exists
        """
        return self._request("find_by_imp_uid", {"imp_uid": imp_uid})

    def find_by_merchant_uid(self, merchant_uid: str) -> IamportResponse:
        """
        GET /payments/find/{merchant_uid}

        Returns the most recent payment for the order, or ``data`` None.
        """
        return self._request("find_by_merchant_uid", {"merchant_uid": merchant_uid})

    def find_all_by_merchant_uid(
        self,
        merchant_uid: str,
        status: PaymentStatus = "all",
        sorting: str | None = None,
        page: int | None = None,
    ) -> IamportResponse:
        """
        GET /payments/findAll/{merchant_uid}/{status}

        Args:
            merchant_uid: Order identifier
            status: One of "all", "ready", "paid", "cancelled", "failed"
            sorting: e.g. "-started", "started", "-paid", "paid", "-updated", "updated"
            page: 1-based page number

        Raises:
            InvalidParameterError: If status is not supported
        """
        return self._request(
            "find_all_by_merchant_uid",
            {"merchant_uid": merchant_uid, "status": status, "sorting": sorting, "page": page},
        )

    def find_all_by_status(
        self,
        status: PaymentStatus = "all",
        page: int | None = None,
        limit: int | None = None,
        since: int | date | datetime | None = None,
        until: int | date | datetime | None = None,
        sorting: str | None = None,
    ) -> IamportResponse:
        """
        GET /payments/status/{status}

        Args:
            status: One of "all", "ready", "paid", "cancelled", "failed"
            page: 1-based page number
            limit: Page size (Iamport caps this at 100)
            since: Only payments created at or after this time
            until: Only payments created at or before this time
            sorting: Sort order, as for find_all_by_merchant_uid

        Raises:
            InvalidParameterError: If status is not supported
        """
        return self._request(
            "find_all_by_status",
            {
                "status": status,
                "page": page,
                "limit": limit,
                "from": to_timestamp(since) if since is not None else None,
                "to": to_timestamp(until) if until is not None else None,
                "sorting": sorting,
            },
        )

    # ============================================================
    # Prepared payments
    # ============================================================

    def create_prepared_payment(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /payments/prepare

        Registers the amount expected for ``merchant_uid`` so Iamport can
        reject a forged amount at checkout.

        Required fields: merchant_uid, amount
        """
        return self._request("create_prepared_payment", data)

    def get_prepared_payment(self, merchant_uid: str | None = None) -> IamportResponse:
        """
        GET /payments/prepare?merchant_uid=...

        Returns:
            IamportResponse; ``data`` is None if nothing was registered
        """
        return self._request("get_prepared_payment", {"merchant_uid": merchant_uid})

    # ============================================================
    # Charges
    # ============================================================

    def pay_onetime(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /subscribe/payments/onetime

        Charge a card once without keeping a billing key. Passing
        ``customer_uid`` stores the card as a billing key as well.

        Required fields: merchant_uid, amount, card_number, expiry, birth
        Optional fields: pwd_2digit, customer_uid, name, buyer_name, ...
        """
        return self._charge("pay_onetime", data)

    def pay_subscription(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /subscribe/payments/again

        Charge a card previously registered as a billing key.

        Required fields: customer_uid, merchant_uid, amount
        """
        return self._charge("pay_subscription", data)

    def pay_foreign(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /subscribe/payments/foreign

        Required fields: merchant_uid, amount, card_number, expiry
        """
        return self._charge("pay_foreign", data)

    def _charge(self, name: str, data: Mapping[str, Any] | None) -> IamportResponse:
        data = dict(data or {})

        logger.info(
            "Payment charge requested",
            extra={
                "operation": name,
                "merchant_uid": data.get("merchant_uid"),
                "customer_uid": data.get("customer_uid"),
                "amount": data.get("amount"),
                "card_number": mask_card_number(data.get("card_number")),
                # Note: expiry, birth and pwd_2digit are intentionally excluded (sensitive)
            },
        )

        try:
            result = self._request(name, data)
        except IamportResponseError as e:
            self._payment_failed(name, e)
            raise

        payment: PaymentData = result.data or {}
        logger.info(
            "Payment charged by Iamport",
            extra={
                "operation": name,
                "imp_uid": payment.get("imp_uid"),
                "merchant_uid": payment.get("merchant_uid"),
                "amount": payment.get("amount"),
                "payment_status": payment.get("status"),
            },
        )

        from .signals import payment_paid

        payment_paid.send(sender=self.__class__, operation=name, data=result.data)

        return result

    # ============================================================
    # Cancellation
    # ============================================================

    def cancel_by_imp_uid(self, imp_uid: str, **extra: Any) -> IamportResponse:
        """
        POST /payments/cancel with imp_uid

        Args:
            imp_uid: Iamport payment identifier
            **extra: amount (partial cancel), tax_free, checksum, reason,
                refund_holder, refund_bank, refund_account

        Raises:
            IamportResponseError: If there is no such payment to cancel
        """
        return self._cancel("cancel_by_imp_uid", {**extra, "imp_uid": imp_uid})

    def cancel_by_merchant_uid(self, merchant_uid: str, **extra: Any) -> IamportResponse:
        """
        POST /payments/cancel with merchant_uid

        Accepts the same extra fields as cancel_by_imp_uid.
        """
        return self._cancel("cancel_by_merchant_uid", {**extra, "merchant_uid": merchant_uid})

    def cancel(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /payments/cancel

        ``imp_uid`` takes precedence over ``merchant_uid`` when both are given.

        The identifier check is left to Iamport, so a rejected token is
        reported first. A request without either identifier never succeeds.

        Raises:
            IamportResponseError: If neither imp_uid nor merchant_uid is given
        """
        return self._cancel("cancel", data)

    def _cancel(self, name: str, data: Mapping[str, Any] | None) -> IamportResponse:
        data = dict(data or {})

        # Only requests that pass validation reach the audit log
        OPERATIONS[name].validate(data)

        logger.warning(
            "Payment cancellation initiated",
            extra={
                "operation": name,
                "imp_uid": data.get("imp_uid"),
                "merchant_uid": data.get("merchant_uid"),
                "cancel_amount": data.get("amount"),
                "cancel_reason": str(data.get("reason") or "")[:50],
            },
        )

        try:
            result = self._request(name, data)
        except IamportResponseError as e:
            self._payment_failed(name, e)
            raise

        payment: PaymentData = result.data or {}
        logger.info(
            "Payment cancelled successfully",
            extra={
                "operation": name,
                "imp_uid": payment.get("imp_uid"),
                "merchant_uid": payment.get("merchant_uid"),
                "cancel_amount": payment.get("cancel_amount"),
            },
        )

        from .signals import payment_cancelled

        payment_cancelled.send(sender=self.__class__, operation=name, data=result.data)

        return result

    def _payment_failed(self, name: str, error: IamportError) -> None:
        logger.error(
            "Payment request rejected by Iamport",
            extra={
                "operation": name,
                "error_code": error.code,
                "error_message": error.message,
            },
        )

        from .signals import payment_failed

        payment_failed.send(
            sender=self.__class__,
            operation=name,
            error_code=error.code,
            error_message=error.message,
        )

    # ============================================================
    # Billing keys
    # ============================================================

    def create_subscription(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /subscribe/customers/{customer_uid}

        Register a card as a billing key for pay_subscription.

        Required fields: customer_uid, card_number, expiry, birth
        """
        data = dict(data or {})
        logger.info(
            "Billing key registration requested",
            extra={
                "customer_uid": data.get("customer_uid"),
                "card_number": mask_card_number(data.get("card_number")),
            },
        )
        return self._request("create_subscription", data)

    def get_subscription(self, customer_uid: str) -> IamportResponse:
        """
        GET /subscribe/customers/{customer_uid}

        Returns:
            IamportResponse; ``data`` is None if no billing key is registered
        """
        return self._request("get_subscription", {"customer_uid": customer_uid})

    def delete_subscription(self, customer_uid: str) -> IamportResponse:
        """DELETE /subscribe/customers/{customer_uid}"""
        return self._request("delete_subscription", {"customer_uid": customer_uid})

    # ============================================================
    # Virtual accounts
    # ============================================================

    def create_vbank(self, data: Mapping[str, Any] | None = None) -> IamportResponse:
        """
        POST /vbanks

        Issue a virtual bank account for a deposit payment.

        Required fields: merchant_uid, amount, vbank_code, vbank_due, vbank_holder
        """
        return self._request("create_vbank", data)


# Default singleton instance
# Import this for convenience: from iamporter.client import iamport_client
iamport_client = IamportClient()
