"""
Structured Error Responses

Maps bookkeeping errors onto HTTP responses with a body the UI can act on,
distinguishing bad input from missing records and numbering conflicts.

Error Response Format:
{
    "error": "invalid_amount" | "invalid_tax_year" | "not_found" | "conflict",
    "message": "gross_amount cannot be negative, got -1"
}
"""

from typing import Optional, Tuple

from fastapi import status

from sitebooks.services.errors import (
    DateOutOfRangeError,
    InvalidAmountError,
    InvoiceNumberConflictError,
    ParseError,
    RecordNotFoundError,
    SiteBooksError,
)


class ValidationErrorResponse:
    """Structured error response builder."""

    @staticmethod
    def invalid_amount(message: str) -> dict:
        return {"error": "invalid_amount", "message": message}

    @staticmethod
    def invalid_tax_year(message: str, value: Optional[str] = None) -> dict:
        response = {"error": "invalid_tax_year", "message": message}
        if value is not None:
            response["received_value"] = str(value)[:100]  # Truncate for safety
        return response

    @staticmethod
    def not_found(message: str) -> dict:
        return {"error": "not_found", "message": message}

    @staticmethod
    def conflict(message: str) -> dict:
        return {"error": "conflict", "message": message}


def error_response_for(exc: SiteBooksError) -> Tuple[int, dict]:
    """
    HTTP status and body for a bookkeeping error.

    Returns:
        (status_code, body) tuple
    """
    message = str(exc)

    if isinstance(exc, RecordNotFoundError):
        return status.HTTP_404_NOT_FOUND, ValidationErrorResponse.not_found(message)
    if isinstance(exc, InvoiceNumberConflictError):
        return status.HTTP_409_CONFLICT, ValidationErrorResponse.conflict(message)
    if isinstance(exc, (ParseError, DateOutOfRangeError)):
        return status.HTTP_400_BAD_REQUEST, ValidationErrorResponse.invalid_tax_year(message)
    if isinstance(exc, InvalidAmountError):
        return status.HTTP_400_BAD_REQUEST, ValidationErrorResponse.invalid_amount(message)

    return status.HTTP_400_BAD_REQUEST, {"error": "validation_error", "message": message}
