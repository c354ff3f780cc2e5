"""Custom exceptions for compliscan."""


class CompliScanError(Exception):
    """Base exception for compliscan."""

    pass


class UnknownFieldError(CompliScanError, KeyError):
    """Raised when a field name is not part of the label schema."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class AuthenticationError(CompliScanError):
    """Raised when a collaborator API key or credential is invalid or missing."""

    pass


class RateLimitError(CompliScanError):
    """Raised when a collaborator API rate limit is exceeded."""

    pass


class ImageError(CompliScanError):
    """Raised when image cannot be read or is invalid."""

    pass


class ContentError(CompliScanError):
    """Raised when page content cannot be read into a content bundle."""

    pass
