"""Exception hierarchy for borrowpower."""


class BorrowPowerError(Exception):
    """Base exception for all borrowpower errors."""


class InvalidInputError(BorrowPowerError, ValueError):
    """Raised when calculation inputs violate the calculator's contract."""


class RateTableError(BorrowPowerError):
    """Raised when a rate table file cannot be read or parsed."""


class ConfigurationError(BorrowPowerError):
    """Raised when static reference tables are inconsistent."""
