"""Exception types raised by the invoice pipeline."""

from __future__ import annotations


class InvoiceSorterError(Exception):
    """Base class for invoice sorter failures."""


class ModelCallError(InvoiceSorterError):
    """A single call to the generative model failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(ModelCallError):
    """The model answered without a text payload where one was expected."""


class RetriesExhaustedError(ModelCallError):
    """Every allowed attempt was rate limited."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(
            f"Failed to call Gemini API after {attempts} attempts: {last_error}",
            status_code=getattr(last_error, "status_code", None),
        )
        self.attempts = attempts
        self.last_error = last_error
