"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class AccrualServiceError(DomainException):
    """Accrual service returned an error or is unavailable"""

    pass


class RateLimitedError(AccrualServiceError):
    """Accrual service asked us to slow down (HTTP 429)"""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class UnknownOrderError(AccrualServiceError):
    """Order is not registered in the accrual service (HTTP 204)"""

    pass


class InvalidOrderNumberError(DomainException):
    """Order number failed the Luhn check"""

    pass


class InvalidAmountError(DomainException):
    """Withdrawal amount is not a positive sum"""

    pass


class OrderAlreadyExistsError(DomainException):
    """Order number is already registered"""

    pass


class OrderConflictError(DomainException):
    """Order number is already registered by another user"""

    pass


class InsufficientFundsError(DomainException):
    """Withdrawal exceeds the user's current balance"""

    pass


class StorageError(DomainException):
    """Persistence layer failed"""

    pass


class AuthenticationError(DomainException):
    """Caller could not be authenticated"""

    pass


class InvalidCredentialsError(AuthenticationError):
    """Unknown login or wrong password"""

    pass


class InvalidTokenError(AuthenticationError):
    """Session token is malformed, forged or expired"""

    pass


class LoginAlreadyExistsError(DomainException):
    """Login is already taken"""

    pass
