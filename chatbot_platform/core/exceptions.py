"""
Error taxonomy for the chatbot platform.

Every error carries a user-visible ``message``. Errors are caught at the
operation boundary (``ChatbotPlatform``) and surfaced as a single string;
none of them is fatal to the process.
"""

from typing import Optional


class ChatbotPlatformError(Exception):
    """Base class for every error the platform surfaces to the user."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ------ Validation -----
class ValidationError(ChatbotPlatformError):
    default_message = "Invalid input"


class MissingField(ValidationError):
    default_message = "All fields are required"


class PasswordTooShort(ValidationError):
    def __init__(self, min_length: int):
        super().__init__(f"Password must be at least {min_length} characters")
        self.min_length = min_length


class ProjectNotFound(ValidationError):
    default_message = "Project not found"


# ------ Auth -----
class AuthError(ChatbotPlatformError):
    default_message = "Authentication failed"


class DuplicateEmail(AuthError):
    default_message = "Email already registered"


class InvalidCredentials(AuthError):
    default_message = "Invalid email or password"


class NotAuthenticated(AuthError):
    default_message = "Please log in first"


# ------ Configuration -----
class ConfigurationError(ChatbotPlatformError):
    default_message = "API key not configured. Please set API_KEY in your environment or .env file."


# ------ Transport -----
class TransportError(ChatbotPlatformError):
    default_message = "Failed to send message. Please check your connection and try again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransportError):
    default_message = "Rate limit exceeded. Please wait a moment and try again."


class RemoteAuthError(TransportError):
    default_message = "Invalid API key. Please check API_KEY in your .env file."


class EndpointNotFound(TransportError):
    default_message = "API endpoint not found. Please check your API_BASE_URL configuration."


class RemoteAPIError(TransportError):
    pass


# ------ Decode -----
class DecodeError(ChatbotPlatformError):
    default_message = "Could not decode data"


class SessionDecodeError(DecodeError):
    default_message = "Session token is invalid"


class ResponseDecodeError(DecodeError):
    default_message = "The assistant reply could not be read"


class RecordDecodeError(DecodeError):
    default_message = "Stored data could not be read"


# ------ Storage -----
class StorageError(ChatbotPlatformError):
    default_message = "Could not save the conversation. Please try again."
