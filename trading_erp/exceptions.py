class ERPError(Exception):
    """Base exception for trading ERP errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the trading ERP"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(ERPError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(ERPError):
    """Exception raised for storage-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(ERPError):
    """Exception raised for caller-correctable input errors.

    ``details`` maps the offending field to a human readable reason.
    """

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class InsufficientStockError(ValidationError):
    """Exception raised when a warehouse cannot cover a requested quantity."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Not enough stock"
        code = code or 'INSUFFICIENT_STOCK'
        super().__init__(message, code, details)


class CurrencyRateError(ValidationError):
    """Exception raised when a non-ledger currency has no usable rate."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Missing exchange rate"
        code = code or 'MISSING_RATE'
        super().__init__(message, code, details)


class ReferentialIntegrityError(ERPError):
    """Exception raised when a change would break references between records."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Referential integrity error"
        super().__init__(message, code, details)


class NotFoundError(ERPError):
    """Exception raised when a requested record is not found."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Record not found"
        super().__init__(message, code, details)


class RestoreConflictError(ERPError):
    """Exception raised when a recycle bin entry collides with a live record."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Restore conflict"
        super().__init__(message, code, details)


class StockError(ERPError):
    """Exception raised when a reversal would drive stock negative in strict mode."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Stock error"
        super().__init__(message, code, details)


class CalculationError(ERPError):
    """Exception raised for calculation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Calculation error"
        super().__init__(message, code, details)
