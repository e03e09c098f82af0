"""
pytest fixtures for django-iamporter tests.

Provides reusable test fixtures for:
- IamportClient instances
- Iamport API response mocks
- responses library activation
- Signal receivers
"""

import time
from unittest.mock import MagicMock

import pytest
import responses

from iamporter.client import IamportClient

API_URL = "https://api.iamport.kr"
TOKEN_URL = f"{API_URL}/users/getToken"
ACCESS_TOKEN = "test-access-token"


@pytest.fixture
def iamport_client():
    """Create an IamportClient instance for testing."""
    return IamportClient(
        api_key="imp_apikey",
        api_secret="test-api-secret",
        api_url=API_URL,
        timeout=30,
    )


# ============================================================
# responses library helpers
# ============================================================


@pytest.fixture
def mocked_responses():
    """
    Activate responses mock for HTTP requests.

    Unmatched requests raise ConnectionError and are still recorded in
    ``mocked_responses.calls``, so ``len(calls) == 0`` proves nothing was sent.

    Usage:
        def test_api(mocked_responses, token_issued):
            mocked_responses.add(
                responses.GET,
                "https://api.iamport.kr/payments/imp_123",
                json={"code": 0, "message": None, "response": {...}},
                status=200,
            )
            # ... test code
    """
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def token_body(access_token=ACCESS_TOKEN, expired_at=None):
    now = int(time.time())
    return {
        "code": 0,
        "message": None,
        "response": {
            "access_token": access_token,
            "now": now,
            "expired_at": expired_at if expired_at is not None else now + 1800,
        },
    }


def token_calls(rsps):
    return [call for call in rsps.calls if call.request.url == TOKEN_URL]


@pytest.fixture
def token_issued(mocked_responses):
    """Register a successful token response valid for 30 minutes."""
    mocked_responses.add(
        responses.POST,
        TOKEN_URL,
        json=token_body(),
        status=200,
    )
    return mocked_responses


# ============================================================
# Iamport API Response Mocks
# ============================================================


@pytest.fixture
def mock_payment():
    """Payment object as returned by Iamport."""
    return {
        "imp_uid": "imp_448280090638",
        "merchant_uid": "iamporter-test-merchant-uid",
        "pay_method": "card",
        "pg_provider": "nice",
        "amount": 5000,
        "cancel_amount": 0,
        "currency": "KRW",
        "status": "paid",
        "card_name": "신한카드",
        "card_number": "1234-****-****-1234",
        "paid_at": 1735657200,
        "receipt_url": "https://iniweb.inicis.com/receipt/imp_448280090638",
    }


@pytest.fixture
def mock_cancelled_payment(mock_payment):
    return {**mock_payment, "status": "cancelled", "cancel_amount": 5000}


@pytest.fixture
def mock_payment_not_found():
    """Lookup of a payment that does not exist (HTTP 404)."""
    return {
        "code": -1,
        "message": "존재하지 않는 결제정보입니다.",
        "response": None,
    }


@pytest.fixture
def mock_unauthorized():
    """Response to a call made with a rejected access token (HTTP 401)."""
    return {
        "code": -1,
        "message": "Unauthorized",
        "response": None,
    }


@pytest.fixture
def mock_cancel_not_found():
    """Cancellation of a payment that does not exist (HTTP 200)."""
    return {
        "code": 1,
        "message": "취소할 결제건이 존재하지 않습니다.",
        "response": None,
    }


@pytest.fixture
def onetime_data():
    return {
        "merchant_uid": "iamporter-test-merchant-uid",
        "amount": 5000,
        "card_number": "1234-1234-1234-1234",
        "expiry": "2029-12",
        "birth": "920220",
    }


@pytest.fixture
def subscription_data():
    return {
        "customer_uid": "iamporter-test-customer-uid",
        "merchant_uid": "iamporter-test-merchant-uid",
        "amount": 5000,
    }


# ============================================================
# Signal Test Fixtures
# ============================================================


@pytest.fixture
def signal_receiver():
    """
    Factory for creating signal receivers that track calls.

    Usage:
        def test_signal(signal_receiver):
            receiver = signal_receiver()
            payment_paid.connect(receiver.handler)
            # ... trigger signal
            assert receiver.called
            assert receiver.call_count == 1
    """

    def _create_receiver():
        receiver = MagicMock()
        receiver.called = False
        receiver.call_count = 0
        receiver.last_kwargs = None

        def handler(sender, **kwargs):
            receiver.called = True
            receiver.call_count += 1
            receiver.last_kwargs = kwargs

        receiver.handler = handler
        return receiver

    return _create_receiver
