"""
Error taxonomy for the bill workflows.

  ValidationError   local, raised before any request is made
  TransportError    network failure or non-2xx response from the API
  ChannelBusyError  a same-channel request is already in flight

A price lookup that finds nothing is not an error; see PriceLookupResult.
"""
from typing import Iterable, Optional


class BillingError(Exception):
    """Base class for all workflow errors."""


class ValidationError(BillingError):
    """Missing or invalid input detected client-side. Never reaches the network."""

    def __init__(self, fields: Iterable[str], message: Optional[str] = None):
        self.fields = list(fields)
        self.message = message or "Missing or invalid: " + ", ".join(self.fields)
        super().__init__(self.message)


class TransportError(BillingError):
    """
    A request failed in transit or the server rejected it.

    message is the server-provided text when the error body carries one,
    otherwise a generic fallback. status_code is None for network failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        validation_errors: Optional[list[str]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.validation_errors = list(validation_errors or [])
        super().__init__(message)


class ChannelBusyError(BillingError):
    """Refused because the same channel already has this request in flight."""

    def __init__(self, channel: str, key: object = None):
        self.channel = channel
        self.key = key
        detail = f" for {key}" if key is not None else ""
        super().__init__(f"{channel} update already in progress{detail}")
