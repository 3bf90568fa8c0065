"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class SourceUnavailable(DomainException):
    """Movement source returned an error or is unreachable"""

    pass


class StoreConflict(DomainException):
    """Persistence failed unexpectedly"""

    pass


class ClassificationUnavailable(DomainException):
    """Reasoning service unreachable or returned an invalid structure"""

    pass


class ConfigMissing(DomainException):
    """Required credential or bank link is absent"""

    pass


class TransactionNotFound(DomainException):
    """No stored transaction with the requested id"""

    pass


class UnknownCategoryError(DomainException):
    """Category is not part of the closed category set"""

    pass


class ConfirmedTransactionError(DomainException):
    """Confirmed transactions can only be re-categorized manually"""

    pass
