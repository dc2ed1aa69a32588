"""
Custom exceptions for the SIP management system.

All SIPMS-specific exceptions inherit from SIPError for easy catching.
"""


class SIPError(Exception):
    """Base exception for all SIPMS errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(SIPError):
    """An entity referenced by id does not exist."""

    def __init__(self, entity: str, entity_id: str, code: str = "NOT_FOUND"):
        super().__init__(f"{entity} not found: {entity_id}", code)
        self.entity = entity
        self.entity_id = entity_id


class FundNotFoundError(NotFoundError):
    """Raised when a mutual fund is not found."""

    def __init__(self, fund_id: str, code: str = "FUND_NOT_FOUND"):
        super().__init__("Fund", fund_id, code)
        self.fund_id = fund_id


class SIPNotFoundError(NotFoundError):
    """Raised when an SIP is not found."""

    def __init__(self, sip_id: str, code: str = "SIP_NOT_FOUND"):
        super().__init__("SIP", sip_id, code)
        self.sip_id = sip_id


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, user_id: str, code: str = "USER_NOT_FOUND"):
        super().__init__("User", user_id, code)
        self.user_id = user_id


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction is not found."""

    def __init__(self, transaction_id: str, code: str = "TRANSACTION_NOT_FOUND"):
        super().__init__("Transaction", transaction_id, code)
        self.transaction_id = transaction_id


class ValidationError(SIPError):
    """Data validation errors (bad amounts, negative percentages, empty ids)."""

    def __init__(self, message: str, field: str = None, code: str = "VALIDATION_ERROR"):
        super().__init__(f"Validation error: {message}", code)
        self.field = field


class InvalidStateError(SIPError):
    """
    Raised when a lifecycle operation is not legal in the SIP's current state.

    Carries the SIP id, its state and the attempted operation for diagnostics.
    """

    def __init__(
        self,
        sip_id: str,
        current_state: str,
        operation: str,
        code: str = "INVALID_STATE"
    ):
        super().__init__(
            f"Invalid operation '{operation}' for SIP {sip_id} in state {current_state}",
            code
        )
        self.sip_id = sip_id
        self.current_state = current_state
        self.operation = operation


class DatabaseError(SIPError):
    """Database operation errors."""

    def __init__(self, message: str, code: str = "DB_ERROR"):
        super().__init__(message, code)


class DuplicateEntityError(DatabaseError):
    """An entity with the same id is already stored."""

    def __init__(self, entity: str, entity_id: str, code: str = "DUPLICATE_ID"):
        super().__init__(f"{entity} already exists: {entity_id}", code)
        self.entity = entity
        self.entity_id = entity_id


class ConfigurationError(SIPError):
    """Invalid or unreadable configuration."""

    def __init__(self, message: str, key: str = None, code: str = "CONFIG_ERROR"):
        super().__init__(message, code)
        self.key = key
