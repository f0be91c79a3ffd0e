# src/blacksmith_tools/errors.py
from typing import Any, Dict, Optional


class BlacksmithError(Exception):
    """Base error for everything the tools can report back to the caller."""

    def __init__(self, message: str, code: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class SessionExpiredError(BlacksmithError):
    def __init__(self):
        super().__init__(
            "Blacksmith session cookie expired. Please refresh your cookie.",
            "SESSION_EXPIRED",
            401,
        )


class ConfigurationError(BlacksmithError):
    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class ApiError(BlacksmithError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message, "API_ERROR", status_code)


class UnknownToolError(BlacksmithError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}", "UNKNOWN_TOOL", 404)


def format_error_response(error: BaseException) -> Dict[str, Any]:
    """Shape an exception into the JSON body returned for a failed tool call."""
    if isinstance(error, SessionExpiredError):
        return {
            "error": error.code,
            "message": error.message,
            "hint": "Log into app.blacksmith.sh again or update BLACKSMITH_SESSION_COOKIE with a fresh value.",
        }
    if isinstance(error, BlacksmithError):
        return {"error": error.code, "message": error.message}
    return {"error": "UNKNOWN_ERROR", "message": str(error)}
