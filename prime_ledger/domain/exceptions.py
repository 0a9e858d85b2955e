"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Referenced account, plan, loan or investment does not exist"""

    pass


class InvalidAmountError(DomainException):
    """Amount is non-positive, non-numeric or otherwise unusable"""

    pass


class AmountOutOfRangeError(DomainException):
    """Investment amount falls outside the plan's min/max bounds"""

    pass


class InsufficientFundsError(DomainException):
    """Account balance is too low for the requested debit"""

    pass


class InvalidStateError(DomainException):
    """Illegal lifecycle transition (e.g. approving a non-pending loan)"""

    pass


class PersistenceError(DomainException):
    """External store call failed or is unavailable"""

    pass


class AuthenticationRequiredError(DomainException):
    """Mutating operation attempted with no signed-in user"""

    pass


class AuthenticationError(DomainException):
    """Auth service rejected the credentials or is unavailable"""

    pass
