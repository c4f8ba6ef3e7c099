"""
Exceptions raised by the Marketo SOAP client.
"""

from __future__ import annotations

from typing import Dict, Optional


class MarketoAPIError(RuntimeError):
    """
    Raised when the Marketo SOAP API returns an error.

    Attributes:
        message: Human-readable error description
        status_code: HTTP status code (if applicable)
        fault_code: SOAP faultcode (if the service returned a fault)
        service_code: Marketo serviceException code, e.g. "20103" for lead not found
        payload: Parsed fault detail (if present)
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        fault_code: Optional[str] = None,
        service_code: Optional[str] = None,
        payload: Optional[Dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.fault_code = fault_code
        self.service_code = service_code
        self.payload = payload

    def __str__(self) -> str:
        parts = [self.message]
        if self.service_code:
            parts.append(f"(code={self.service_code})")
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)
