"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInput(DomainException):
    """Fine record has a missing or malformed field"""

    pass


class InvalidFlags(DomainException):
    """business_flags is not a JSON object / mapping of booleans"""

    pass


class LookupFailure(DomainException):
    """Offender lookup could not be completed"""

    pass


class FineNotFoundError(DomainException):
    """No fine exists with the requested id"""

    pass
