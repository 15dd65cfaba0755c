"""Stampman exceptions."""

from enum import Enum


class ErrorCode(str, Enum):
    """Closed set of stamp engine error kinds."""

    CAFE_NOT_FOUND = "CAFE_NOT_FOUND"
    BALANCE_NOT_FOUND = "BALANCE_NOT_FOUND"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"
    INSUFFICIENT_STAMPS = "INSUFFICIENT_STAMPS"
    INVALID_OR_EXPIRED_TOKEN = "INVALID_OR_EXPIRED_TOKEN"
    NO_ACTIVE_TOKEN = "NO_ACTIVE_TOKEN"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


class BaseError(Exception):
    """
    Structured exception with a machine-readable code.

    Subclasses provide `_default_messages` keyed by code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, self.code_value)
        self.data = data
        super().__init__(f"[{self.code_value}] {self.message}")

    @property
    def code_value(self) -> str:
        return getattr(self.code, "value", self.code)

    def as_dict(self) -> dict:
        return {"code": self.code_value, "message": self.message, "data": self.data}


class StampmanError(BaseError):
    """
    Structured exception for stamp ledger operations.

    Usage:
        try:
            engine.tap.auto_redeem_stamp(cafe_id, customer_id)
        except StampmanError as e:
            if e.code == ErrorCode.NO_ACTIVE_TOKEN:
                prompt_to_ask_staff()

    Only PERSISTENCE_ERROR is worth retrying. Every other code is final
    for the request: the customer must wait, collect more stamps, or ask
    staff for a new token.
    """

    _default_messages = {
        ErrorCode.CAFE_NOT_FOUND: "Café not found",
        ErrorCode.BALANCE_NOT_FOUND: "You have no stamps at this café yet",
        ErrorCode.COOLDOWN_ACTIVE: "A stamp was added recently. Please try again later",
        ErrorCode.DAILY_LIMIT_REACHED: "Daily stamp limit reached for this café",
        ErrorCode.INSUFFICIENT_STAMPS: "Not enough stamps for a reward",
        ErrorCode.INVALID_OR_EXPIRED_TOKEN: "Invalid or expired stamp code",
        ErrorCode.NO_ACTIVE_TOKEN: (
            "Stamping is not open right now. Ask the staff to press the allow stamping button"
        ),
        ErrorCode.PERSISTENCE_ERROR: "Something went wrong. Please try again",
    }

    def __init__(self, code: ErrorCode | str, message: str | None = None, **data):
        super().__init__(ErrorCode(code), message, **data)

    @property
    def retryable(self) -> bool:
        return self.code == ErrorCode.PERSISTENCE_ERROR
