"""Error kinds raised by the marketplace domain.

They extend protean's exception hierarchy, so code that already handles
``ValidationError`` / ``ObjectNotFoundError`` / ``InvalidOperationError``
keeps working. Mapping to transport status codes is the API layer's job.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class NotFound(ObjectNotFoundError):
    """Referenced entity does not exist or is hidden from the caller."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class Forbidden(InvalidOperationError):
    """Actor lacks the ownership or role required for the mutation."""

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class DomainRuleViolation(ValidationError):
    """Base for business-rule errors; keeps protean's ``{field: [messages]}`` shape."""

    field = "base"

    def __init__(self, message):
        self.message = message
        super().__init__({self.field: [message]})


class InvalidTransition(DomainRuleViolation):
    """Requested state change is not allowed from the current state."""

    field = "status"

    def __init__(self, action, current_status, target_status, valid_next_states):
        self.action = action
        self.current_status = current_status
        self.target_status = target_status
        self.valid_next_states = list(valid_next_states)
        allowed = ", ".join(self.valid_next_states) or "none"
        super().__init__(f"Cannot {action} in status {current_status}. Valid transitions: {allowed}")


class MissingReason(DomainRuleViolation):
    field = "reason"


class DuplicateActiveSubscription(DomainRuleViolation):
    field = "subscription"


class AlreadyActive(DomainRuleViolation):
    field = "subscription"


class QuantityInvariantViolation(DomainRuleViolation):
    field = "quantity"


class ProductUnavailable(DomainRuleViolation):
    field = "items"


class InvalidPrice(DomainRuleViolation):
    field = "price"


class UnknownOrderStatus(DomainRuleViolation):
    field = "status"
