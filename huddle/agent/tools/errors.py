"""Structured tool failures.

Every failure a tool reports has the shape
``{"error": str, "message": str, "code"?: str, "details"?: dict}``.
"""

from typing import Any


def tool_error(
    error: str,
    message: str,
    code: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    result: dict[str, Any] = {"error": error, "message": message}
    if code:
        result["code"] = code
    if details:
        result["details"] = details
    return result


def is_tool_error(result: Any) -> bool:
    return isinstance(result, dict) and "error" in result and "message" in result


class ToolError(Exception):
    """Raised by tools; rendered with ``to_dict()``."""

    error = "ToolError"
    code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return tool_error(self.error, self.message, self.code, self.details)


class InvalidInputError(ToolError):
    error = "InvalidInput"
    code = "INVALID_INPUT"


class InsufficientFundsError(ToolError):
    error = "InsufficientFunds"
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, message: str, required: int, available: int, asset: str = "ETH"):
        super().__init__(
            message,
            details={"required": str(required), "available": str(available), "asset": asset},
        )


class WalletNotFoundError(ToolError):
    error = "WalletNotFound"
    code = "WALLET_NOT_FOUND"


class VerificationTimeout(ToolError):
    error = "VerificationTimeout"
    code = "VERIFICATION_TIMEOUT"

    def __init__(self, guid: str, attempts: int):
        super().__init__(
            "Verification timed out",
            details={"guid": guid, "attempts": attempts},
        )


class ServiceUnavailableError(ToolError):
    error = "ServiceUnavailable"
    code = "SERVICE_UNAVAILABLE"


class TransactionFailedError(ToolError):
    error = "TransactionFailed"
    code = "TRANSACTION_FAILED"
