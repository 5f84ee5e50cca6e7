"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidRole(DomainException):
    """Subscription item carries a role the plan cannot price"""

    pass


class InvalidPlanConfiguration(DomainException):
    """Plan cost or employer percentage is out of range"""

    pass


class InvalidSubscription(DomainException):
    """Item set or declared subscription type violates enrollment rules"""

    pass


class InsufficientReference(DomainException):
    """Referenced company, employee, plan, wallet or subscription does not exist"""

    pass


class SubscriptionNotActive(DomainException):
    """Debit requested for a subscription that is not active"""

    pass


class CollaboratorUnavailable(DomainException):
    """Document intake or identity verification service failed"""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator}: {message}")
        self.collaborator = collaborator


class ConcurrentUpdateError(DomainException):
    """Compare-and-swap update kept losing to concurrent writers"""

    pass


class CurrencyMismatch(DomainException):
    """Arithmetic attempted between amounts in different currencies"""

    pass


class InvalidDocument(DomainException):
    """Uploaded file set breaks count, size or type limits"""

    pass
