"""
Access token cache for the Iamport API.

The token is issued by POST /users/getToken and stays valid until its
``expired_at`` timestamp. TokenManager reuses it until then and fetches a
new one on the first call after expiry.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

logger: logging.Logger = logging.getLogger(__name__)

# Returns (access_token, expired_at unix timestamp)
TokenFetcher = Callable[[], tuple[str, int]]


class TokenManager:
    """
    Holds one access token and its expiry.

    Concurrent callers that see an expired token may each refresh it; the
    last write wins. Tokens are plain credentials, so any valid one works.

    Attributes:
        token: Current access token, or None before the first fetch
        expire_at: Unix timestamp at which the token stops being used
        leeway: Seconds before expire_at at which the token counts as expired
    """

    def __init__(self, fetch: TokenFetcher, leeway: int = 0):
        self._fetch = fetch
        self.leeway = leeway
        self.token: str | None = None
        self.expire_at: int = 0

    def is_expired(self) -> bool:
        if not self.token:
            return True
        return time.time() >= self.expire_at - self.leeway

    def get_token(self, force: bool = False) -> str:
        """
        Return a valid access token, fetching a new one if needed.

        Args:
            force: Fetch a new token even if the cached one is still valid

        Raises:
            AuthenticationError: If Iamport rejects the API credentials
        """
        # Read once; another thread may invalidate() between check and return
        token, expire_at = self.token, self.expire_at
        if not force and token and time.time() < expire_at - self.leeway:
            logger.debug("Reusing Iamport access token", extra={"expire_at": expire_at})
            return token

        token, expire_at = self._fetch()
        self.token = token
        self.expire_at = int(expire_at)

        logger.info("Iamport access token issued", extra={"expire_at": self.expire_at})
        return token

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        self.token = None
        self.expire_at = 0
