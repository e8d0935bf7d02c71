"""
SiteBooks - Error taxonomy

Calculation errors are local validation failures raised before any
arithmetic or write happens. Persistence errors come from the service layer.
"""


class SiteBooksError(ValueError):
    """Base class for all bookkeeping errors"""
    pass


class InvalidAmountError(SiteBooksError):
    """Raised for negative, zero (where forbidden) or non-numeric money, mileage and count inputs"""
    pass


class ParseError(SiteBooksError):
    """Raised when a tax year label is not of the form YYYY/YYYY"""
    pass


class RecordNotFoundError(SiteBooksError, LookupError):
    """Raised when a job or payment does not exist for the requesting user"""
    pass


class InvoiceNumberConflictError(SiteBooksError):
    """Raised when no unique invoice number could be claimed after the configured number of attempts"""
    pass


class DateOutOfRangeError(SiteBooksError):
    """Raised when a tax year would start or end outside the supported calendar (years 1 to 9999)"""
    pass
