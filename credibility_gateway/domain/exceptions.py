"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class RecordStoreError(DomainException):
    """Record Store returned an error or is unavailable"""

    pass


class InvalidRecordError(DomainException):
    """Record data is malformed and cannot be normalized"""

    pass


class BusinessNotFoundError(RecordStoreError):
    """Record Store has no snapshot for the requested business"""

    pass
