"""Error taxonomy for console operations."""

from typing import Any, Dict, Optional


class ConsoleError(Exception):
    """Base console error.

    Every console error ends at a user-visible notification, so each one
    carries a short title alongside the message.
    """

    code = "console_error"
    title = "Error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ConsoleError):
    """Bad input, detected before any network call."""

    code = "validation_error"
    title = "Validation Error"


class NoValidApiKey(ValidationError):
    """No active API key with the required scope."""

    code = "no_valid_api_key"
    title = "No Valid API Key"


class AuthorizationError(ConsoleError):
    """Integration disabled, or API key invalid or expired."""

    code = "authorization_error"
    title = "Not Authorized"


class IntegrationDisabled(AuthorizationError):
    """The integration has not been enabled or configured by an admin."""

    code = "integration_disabled"
    title = "Integration Disabled"


class BackendError(ConsoleError):
    """A backend call failed or answered with a non-2xx status."""

    code = "backend_error"
    title = "Request Failed"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class NoAuthUrl(BackendError):
    """The connect function answered without an authorization URL."""

    code = "no_auth_url"
    title = "Connection Error"


class UnknownResponseShape(ConsoleError):
    """A backend payload matched none of the accepted shapes."""

    code = "unknown_response_shape"
    title = "Unexpected Response"

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message, {"raw_response": raw})
        self.raw = raw


class DuplicateSubmission(ConsoleError):
    """The same mutation is already in flight."""

    code = "duplicate_submission"
    title = "Already In Progress"


class MissingApiKey(ValidationError):
    """A diagnostic was requested without an API key."""

    code = "api_key_required"
    title = "API Key Required"
