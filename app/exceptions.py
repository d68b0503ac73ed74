"""
Domain errors for the vault.

Each error carries the HTTP status it maps to; the handlers registered in
app.main render them as {"status": "error", "message": ...}.
"""

from fastapi import status


class VaultError(Exception):
    """Base class for all errors surfaced by the vault core."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(VaultError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No token, authorization denied."


class MissingFile(VaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No file uploaded"


class UnsupportedType(VaultError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    default_message = "Only JPEG, PNG, WEBP and PDF files are accepted"


class FileTooLarge(VaultError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "File is too large"


class DocumentNotFound(VaultError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Document not found"


class InvalidTransition(VaultError):
    """Raised by a store when a status patch would move a record backwards."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Invalid status transition"


class ExtractionFailure(VaultError):
    default_message = "Text extraction failed"


class ExtractionTimeout(ExtractionFailure):
    default_message = "Text extraction timed out"


class StoreUnavailable(VaultError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Document store unavailable, please retry"


class UserAlreadyExists(VaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "User already exists with that email or username."


class InvalidCredentials(VaultError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid credentials."
