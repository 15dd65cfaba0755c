"""
Django Stampman - Café stamp loyalty.

Usage:
    from stampman import StampEngine
    from stampman.exceptions import StampmanError

    engine = StampEngine.from_settings()

    result = engine.accrual.earn("USER-1", "CAFE-1", source="order", order_id="ORD-9")
    issued = engine.tokens.issue("CAFE-1", issuer_id="STAFF-1")
    result = engine.tap.auto_redeem_stamp("CAFE-1", "USER-1")
    engine.redemption.redeem("USER-1", "CAFE-1")
"""


def __getattr__(name):
    if name == "StampEngine":
        from stampman.service import StampEngine

        return StampEngine
    if name == "StampmanError":
        from stampman.exceptions import StampmanError

        return StampmanError
    if name == "ErrorCode":
        from stampman.exceptions import ErrorCode

        return ErrorCode
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["StampEngine", "StampmanError", "ErrorCode"]
__version__ = "0.1.0"
