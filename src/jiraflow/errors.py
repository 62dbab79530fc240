"""Error taxonomy & redaction.

Every failure that reaches the CLI boundary is a :class:`JiraError` carrying a
stable ``code`` tag, a human message and optional detail text. The CLI renders
it as a single JSON record::

    {"success": false, "error": {"code": "AUTH_INVALID", "message": "...", "details": "..."}}

Public API:
- JiraError / ConfigError
- classify_error(exc) -> JiraError
- redact(text) -> str
"""
from __future__ import annotations

import re
from typing import Any

import requests

AUTH_MISSING = "AUTH_MISSING"
AUTH_INVALID = "AUTH_INVALID"
PERMISSION_DENIED = "PERMISSION_DENIED"
TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
INVALID_TRANSITION = "INVALID_TRANSITION"
ASSIGNEE_NOT_FOUND = "ASSIGNEE_NOT_FOUND"
NETWORK_ERROR = "NETWORK_ERROR"
BRANCH_NO_TICKET = "BRANCH_NO_TICKET"
CONFIG_ERROR = "CONFIG_ERROR"
INVALID_ARGS = "INVALID_ARGS"
GIT_ERROR = "GIT_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

ERROR_CODES = frozenset(
    {
        AUTH_MISSING,
        AUTH_INVALID,
        PERMISSION_DENIED,
        TICKET_NOT_FOUND,
        INVALID_TRANSITION,
        ASSIGNEE_NOT_FOUND,
        NETWORK_ERROR,
        BRANCH_NO_TICKET,
        CONFIG_ERROR,
        INVALID_ARGS,
        GIT_ERROR,
        UNKNOWN_ERROR,
    }
)

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ATATT[A-Za-z0-9_\-=]{20,}"),  # Atlassian API tokens
    re.compile(r"(?i)(authorization:\s*basic\s+)[A-Za-z0-9+/=]+"),
    re.compile(r"(?i)(\"?api_?token\"?\s*[:=]\s*\"?)[^\s\",}]+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"


class JiraError(RuntimeError):
    """Raised for every tracker, configuration or local tooling failure."""

    def __init__(
        self,
        code: str,
        message: str,
        details: str | None = None,
        *,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code if code in ERROR_CODES else UNKNOWN_ERROR
        self.message = message
        self.details = details
        self.status = status

    def to_record(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": redact(self.message)}
        if self.details:
            error["details"] = redact(self.details)
        return {"success": False, "error": error}

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"JiraError(code={self.code!r}, message={self.message!r})"


class ConfigError(JiraError):
    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(CONFIG_ERROR, message, details)


def redact(text: str) -> str:
    """Mask API tokens and basic-auth headers in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> JiraError:
    """Best-effort conversion of any exception into a :class:`JiraError`.

    - JiraError -> returned unchanged
    - requests connection/timeout failures -> NETWORK_ERROR
    - anything else -> UNKNOWN_ERROR with the exception text
    """
    if isinstance(exc, JiraError):
        return exc
    if isinstance(exc, requests.RequestException):
        return JiraError(NETWORK_ERROR, "Failed to connect to Jira", str(exc))
    return JiraError(UNKNOWN_ERROR, str(exc) or exc.__class__.__name__)


__all__ = [
    "ERROR_CODES",
    "JiraError",
    "ConfigError",
    "classify_error",
    "redact",
    "AUTH_MISSING",
    "AUTH_INVALID",
    "PERMISSION_DENIED",
    "TICKET_NOT_FOUND",
    "INVALID_TRANSITION",
    "ASSIGNEE_NOT_FOUND",
    "NETWORK_ERROR",
    "BRANCH_NO_TICKET",
    "CONFIG_ERROR",
    "INVALID_ARGS",
    "GIT_ERROR",
    "UNKNOWN_ERROR",
]
