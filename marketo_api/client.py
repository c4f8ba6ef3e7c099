"""
Marketo SOAP API Integration

Client for the Marketo SOAP web service (mktows).

Features:
- HMAC-SHA1 request signing
- Automatic retries with exponential backoff
- Respects Retry-After headers
- Request timeouts
- SOAP faults surfaced as MarketoAPIError
- Environment variable configuration
- Context manager support

Docs: http://developers.marketo.com/documentation/soap/
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import requests

from .exceptions import MarketoAPIError
from .leads import Leads
from .soap import build_envelope, camelize, find_fault, parse_response

# =========================================
# Logging
# =========================================

logger = logging.getLogger(__name__)

# =========================================
# Configuration
# =========================================

DEFAULT_TIMEOUT = (3.05, 60)  # (connect, read) timeouts in seconds
DEFAULT_API_VERSION = "2_3"
DEFAULT_SUBDOMAIN = "123-ABC-456"
MAX_RETRIES = 3
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class MarketoConfig:
    """
    Configuration for a Marketo SOAP connection.

    Can be initialized from environment variables:
        config = MarketoConfig.from_env()
    """

    user_id: str
    encryption_key: str
    subdomain: str = DEFAULT_SUBDOMAIN
    api_version: str = DEFAULT_API_VERSION
    endpoint: Optional[str] = None
    timeout: Tuple[float, float] = DEFAULT_TIMEOUT
    max_retries: int = MAX_RETRIES

    @property
    def endpoint_url(self) -> str:
        if self.endpoint:
            return self.endpoint
        return f"https://{self.subdomain}.mktoapi.com/soap/mktows/{self.api_version}"

    @classmethod
    def from_env(cls) -> "MarketoConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            MARKETO_USER_ID: Required SOAP user id
            MARKETO_ENCRYPTION_KEY: Required SOAP encryption key
            MARKETO_SUBDOMAIN: Munchkin account subdomain (e.g. 123-ABC-456)
            MARKETO_API_VERSION: Optional API version (default: 2_3)
            MARKETO_ENDPOINT: Optional full endpoint URL, overrides subdomain/version
            MARKETO_TIMEOUT_CONNECT: Optional connect timeout (default: 3.05)
            MARKETO_TIMEOUT_READ: Optional read timeout (default: 60)
            MARKETO_MAX_RETRIES: Optional max retries (default: 3)
        """
        user_id = os.environ.get("MARKETO_USER_ID")
        encryption_key = os.environ.get("MARKETO_ENCRYPTION_KEY")
        if not user_id or not encryption_key:
            raise ValueError("MARKETO_USER_ID and MARKETO_ENCRYPTION_KEY environment variables are required")

        connect_timeout = float(os.environ.get("MARKETO_TIMEOUT_CONNECT", "3.05"))
        read_timeout = float(os.environ.get("MARKETO_TIMEOUT_READ", "60"))

        return cls(
            user_id=user_id,
            encryption_key=encryption_key,
            subdomain=os.environ.get("MARKETO_SUBDOMAIN", DEFAULT_SUBDOMAIN),
            api_version=os.environ.get("MARKETO_API_VERSION", DEFAULT_API_VERSION),
            endpoint=os.environ.get("MARKETO_ENDPOINT") or None,
            timeout=(connect_timeout, read_timeout),
            max_retries=int(os.environ.get("MARKETO_MAX_RETRIES", str(MAX_RETRIES))),
        )


# =========================================
# Client
# =========================================


class MarketoClient:
    """
    Client for the Marketo SOAP API.

    Operations are grouped into proxies; lead operations live on `leads`.

    Usage:
        # From credentials
        client = MarketoClient(user_id="user", encryption_key="key", subdomain="123-ABC-456")

        # From environment
        client = MarketoClient.from_env()

        # As context manager
        with MarketoClient.from_env() as client:
            lead = client.leads.get_by_email("jane@example.org")
    """

    def __init__(self, config: Optional[MarketoConfig] = None, **options: Any):
        """
        Initialize client with credentials or config.

        Args:
            config: Full configuration object
            **options: MarketoConfig fields (ignored if config is provided)
        """
        if config:
            self.config = config
        elif options.get("user_id") and options.get("encryption_key"):
            self.config = MarketoConfig(**options)
        else:
            raise ValueError("Either user_id and encryption_key or config must be provided")

        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": "marketo-api/1.0",
                "Accept": "text/xml",
                "Content-Type": "text/xml;charset=UTF-8",
                "SOAPAction": '""',
            }
        )
        self._backoff_until = 0.0  # Timestamp until which we should wait (from 429s)
        self._leads: Optional[Leads] = None

        logger.debug("MarketoClient initialized with endpoint=%s", self.config.endpoint_url)

    @classmethod
    def from_env(cls) -> "MarketoClient":
        """Create client from environment variables."""
        return cls(config=MarketoConfig.from_env())

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
        logger.debug("MarketoClient session closed")

    def __enter__(self) -> "MarketoClient":
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb) -> None:
        self.close()

    @property
    def leads(self) -> Leads:
        """Lead operations bound to this client."""
        if self._leads is None:
            self._leads = Leads(self)
        return self._leads

    # =========================================
    # Authentication
    # =========================================

    def signature(self, timestamp: Optional[str] = None) -> Dict[str, str]:
        """
        Build the AuthenticationHeader for a request.

        The signature is HMAC-SHA1(encryption_key, timestamp + user_id) as lower-case hex.
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        digest = hmac.new(
            self.config.encryption_key.encode("utf-8"),
            (timestamp + self.config.user_id).encode("utf-8"),
            hashlib.sha1,
        ).hexdigest()
        return {
            "mktowsUserId": self.config.user_id,
            "requestSignature": digest,
            "requestTimestamp": timestamp,
        }

    # =========================================
    # Internal: Rate Limiting & Retries
    # =========================================

    def _rate_limit(self) -> None:
        """Wait out any backoff requested by the server."""
        now = time.time()
        if now < self._backoff_until:
            sleep_time = self._backoff_until - now
            logger.debug("Rate limit backoff: sleeping %.2fs", sleep_time)
            time.sleep(sleep_time)

    def _sleep_backoff(self, attempt: int, base: float = 0.5, cap: float = 10.0) -> None:
        """Sleep with exponential backoff + jitter."""
        delay = min(cap, base * (2**attempt)) + random.uniform(0, 0.25)
        logger.warning("Retry attempt %d: sleeping %.2fs", attempt + 1, delay)
        time.sleep(delay)

    def _handle_retry_after(self, response: requests.Response) -> None:
        """Parse Retry-After header and set backoff time."""
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                seconds = int(retry_after)
                self._backoff_until = time.time() + seconds
                logger.info("Retry-After header received: %ds", seconds)
            except ValueError:
                self._backoff_until = time.time() + 5

    # =========================================
    # Remote Calls
    # =========================================

    def call(self, method: str, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Invoke a remote operation.

        Args:
            method: Local operation name, e.g. "get_lead" for getLead
            message: Request parameters

        Returns:
            The parsed `result` of the success response

        Raises:
            MarketoAPIError: On SOAP faults, HTTP errors, or after all retries fail
        """
        remote = camelize(method)
        last_exception: Optional[Exception] = None

        for attempt in range(self.config.max_retries):
            self._rate_limit()

            logger.debug("POST %s (attempt %d/%d)", remote, attempt + 1, self.config.max_retries)
            body = build_envelope(remote, message, self.signature())

            try:
                response = self.session.post(self.config.endpoint_url, data=body, timeout=self.config.timeout)
                logger.debug("POST %s -> %d", remote, response.status_code)

                fault = find_fault(response.content, status_code=response.status_code)
                if fault is not None:
                    logger.error("%s failed: %s", remote, fault)
                    raise fault

                if response.status_code in RETRYABLE_STATUS_CODES:
                    self._handle_retry_after(response)
                    if attempt < self.config.max_retries - 1:
                        self._sleep_backoff(attempt)
                        continue

                response.raise_for_status()
                return parse_response(response.content)

            except requests.exceptions.Timeout as e:
                logger.warning("%s timed out", remote)
                last_exception = e
                if attempt < self.config.max_retries - 1:
                    self._sleep_backoff(attempt)
                    continue

            except requests.exceptions.HTTPError as e:
                logger.error("%s failed: %s", remote, e)
                raise MarketoAPIError(str(e), status_code=response.status_code)

            except requests.exceptions.RequestException as e:
                logger.warning("%s request error: %s", remote, e)
                last_exception = e
                if attempt < self.config.max_retries - 1:
                    self._sleep_backoff(attempt)
                    continue

        logger.error("Request failed after %d retries: %s", self.config.max_retries, last_exception)
        raise MarketoAPIError(f"Request failed after {self.config.max_retries} retries: {last_exception}")


def get_client(**options: Any) -> MarketoClient:
    """
    Build a client from keyword options, or from the environment when none are given.

    Usage:
        client = get_client(user_id="user", encryption_key="key")
    """
    if options:
        return MarketoClient(**options)
    return MarketoClient.from_env()
