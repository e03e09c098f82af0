"""
Custom exceptions for Iamport API integration.

Every failure surfaces as an IamportError (message + optional cause), so
callers can catch the base class and show ``message`` to users unmodified.

Usage:
    from iamporter.exceptions import IamportError, InvalidParameterError

    try:
        result = iamport_client.pay_onetime(data)
    except InvalidParameterError as e:
        # Raised locally, nothing was sent to Iamport
        logger.warning(e.message)
    except IamportError as e:
        logger.error(f"Payment failed: {e.code} - {e.message}")
"""

from __future__ import annotations

from typing import Any


class IamportError(Exception):
    """
    Base exception for Iamport-related errors.

    Attributes:
        message: Human-readable error description (vendor wording is kept as-is)
        code: Iamport envelope code, or a local code such as "TIMEOUT"
        status: HTTP status code (if a response was received)
        response: Raw API response body (if available)
    """

    def __init__(
        self,
        message: str = "Iamport error occurred",
        code: int | str = "",
        status: int | None = None,
        response: Any = None,
    ):
        self.message = message
        self.code = code
        self.status = status
        self.response = response
        super().__init__(self.message)

    @property
    def cause(self) -> BaseException | None:
        """Underlying exception this error was raised from, if any."""
        return self.__cause__

    def __str__(self):
        if self.code != "":
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigurationError(IamportError):
    """
    Raised when Iamport is not properly configured.

    This can occur when:
    - IAMPORTER_API_KEY is empty
    - IAMPORTER_API_SECRET is empty
    """

    pass


class InvalidParameterError(IamportError):
    """
    Raised when request data fails local validation.

    Always raised before any network call, including the token request:
    - A required field is missing
    - A status filter is not supported
    """

    pass


class AuthenticationError(IamportError):
    """
    Raised when Iamport rejects the API credentials or the access token.
    """

    pass


class IamportResponseError(IamportError):
    """
    Raised when Iamport accepts the request but the operation fails.

    Examples:
    - Cancelling a payment that does not exist
    - Cancelling without either imp_uid or merchant_uid
    - Charging with an invalid card number
    - Charging with an unregistered billing key
    """

    pass


class IamportConnectionError(IamportError):
    """
    Raised on network-level failures (DNS, timeout, connection reset).

    The original requests exception is available as ``cause``.
    """

    pass
