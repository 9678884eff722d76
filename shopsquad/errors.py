"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class InvalidCouponError(ValidationError):
    """Raised when a coupon code is unknown or cannot be applied."""

    def __init__(self, message="Invalid coupon code"):
        """Initialize the error."""
        super().__init__(message)


class PermissionDeniedError(AppError):
    """Raised when a user may not perform an action on a squad."""

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    def __init__(self, message="Resource already exists."):
        """Initialize the error."""
        super().__init__(message, 409)


class InvalidTransitionError(AppError):
    """Raised when a squad status change is not allowed."""

    def __init__(self, message="This status change is not allowed."):
        """Initialize the error."""
        super().__init__(message, 409)


class PaymentRecordError(AppError):
    """Raised when a captured payment could not be recorded on the squad."""

    def __init__(self, message="Your payment was received but could not be recorded."):
        """Initialize the error."""
        super().__init__(message, 502)
