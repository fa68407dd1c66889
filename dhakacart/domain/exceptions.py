"""Domain-level exceptions.

Every business rule violation is a subclass of DomainError. Services roll
back their transaction before raising one, and the API layer renders them
uniformly as ``{"error": message}`` with the class's ``status_code``.
"""


class DomainError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Malformed or missing input (empty cart, short address, bad role...)."""

    status_code = 400


class NotFound(DomainError):
    """Product, order, payment or user absent, or not owned by the caller."""

    status_code = 404


class Forbidden(DomainError):
    """Caller lacks the role required for the operation."""

    status_code = 403


class InsufficientStock(DomainError):
    """Requested quantity exceeds available stock."""

    status_code = 409


class InvalidState(DomainError):
    """Operation not allowed in the entity's current status."""

    status_code = 409


class TransactionFailure(DomainError):
    """The store failed while the transaction was in flight or committing."""

    status_code = 500


class Unauthorized(DomainError):
    """No verified identity was supplied by the auth layer."""

    status_code = 401
