class ReorderError(Exception):
    """Base exception for the Reorder Suggestion Engine."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Reorder Suggestion Engine"
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


class ConfigError(ReorderError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(ReorderError):
    """Exception raised for database-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class ValidationError(ReorderError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class SupplierError(ReorderError):
    """Exception raised for supplier-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Supplier error"
        super().__init__(message, code, details)


class ProductError(ReorderError):
    """Exception raised for product-related errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Product error"
        super().__init__(message, code, details)


class OrderError(ReorderError):
    """Exception raised for purchase order errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Order error"
        super().__init__(message, code, details)


class CooldownActiveError(OrderError):
    """Raised when a supplier already received a purchase order inside the cooldown window."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Supplier is inside its reorder cooldown window"
        super().__init__(message, code or 'COOLDOWN', details)


class BatchProcessError(ReorderError):
    """Exception raised for batch process errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Batch process error"
        super().__init__(message, code, details)
