"""Error taxonomy for credential resolution and upstream calls.

Every resolver failure carries an ``ErrorType`` tag so callers (and the
frontend) can branch on ``err.type`` instead of parsing message text.
"""

from datetime import datetime
from enum import Enum


class ErrorType(str, Enum):
    NO_USER_KEY = "no_user_key"
    EXPIRED_USER_KEY = "expired_user_key"
    INVALID_USER_KEY = "invalid_user_key"
    MISSING_API_KEY = "missing_api_key"
    MODEL_NOT_CONFIGURED = "model_not_configured"
    CONFIGURATION = "configuration_error"


class CredentialError(Exception):
    """Base for all resolution failures."""

    type: ErrorType = ErrorType.CONFIGURATION
    status_code: int = 500
    default_message = "Endpoint configuration error"

    def __init__(self, endpoint: str, message: str | None = None, **info):
        self.endpoint = endpoint
        self.message = message or self.default_message
        self.info = info
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "endpoint": self.endpoint,
            **self.info,
            "message": self.message,
        }


class NoUserKeyError(CredentialError):
    type = ErrorType.NO_USER_KEY
    status_code = 401
    default_message = "No API key stored for this endpoint. Please add your key."


class ExpiredUserKeyError(CredentialError):
    type = ErrorType.EXPIRED_USER_KEY
    status_code = 401

    def __init__(self, endpoint: str, expired_at: datetime):
        super().__init__(
            endpoint,
            f"Your API key for {endpoint} expired at {expired_at.isoformat()}. "
            "Please provide it again.",
            expired_at=expired_at.isoformat(),
        )


class InvalidUserKeyError(CredentialError):
    type = ErrorType.INVALID_USER_KEY
    status_code = 401
    default_message = "Stored API key could not be read. Please provide it again."


class MissingApiKeyError(CredentialError):
    type = ErrorType.MISSING_API_KEY
    status_code = 500
    default_message = "Assistants API key not provided. Please provide it again."


class ModelNotConfiguredError(CredentialError):
    type = ErrorType.MODEL_NOT_CONFIGURED
    status_code = 400

    def __init__(self, endpoint: str, model: str):
        super().__init__(
            endpoint,
            f"No model configuration found for model: {model}",
            model=model,
        )


class ConfigurationError(CredentialError):
    type = ErrorType.CONFIGURATION
    status_code = 500


class UpstreamHttpError(Exception):
    """Non-2xx (or unreachable) response from the provider API."""

    def __init__(self, status_code: int, method: str, url: str, body=None):
        self.status_code = status_code
        self.method = method
        self.url = url
        self.body = body
        super().__init__(f"{method} {url} failed with status {status_code}")
