"""Custom exceptions for lrcsync."""

class LrcSyncError(Exception):
    """Base exception for lrcsync."""
    pass

class ConfigError(LrcSyncError):
    """Invalid settings."""
    pass

class ValidationError(LrcSyncError):
    """Invalid input parameters."""
    pass

class DatabaseFormatError(LrcSyncError):
    """Database file is unreadable or has an unsupported format version."""
    pass

class LrcFormatError(LrcSyncError):
    """Malformed LRC text in strict parsing mode."""

    def __init__(self, message: str, line_number: int = 0):
        super().__init__(message)
        self.line_number = line_number

class TagReadError(LrcSyncError):
    """Error reading tags from an audio file."""
    pass

class CatalogError(LrcSyncError):
    """Error talking to the remote catalog."""
    pass

class KeywordForbiddenError(CatalogError):
    """The catalog refused the search because a keyword is blocked."""

    def __init__(self, keywords: str):
        super().__init__(f'Keyword blocked by the catalog in "{keywords}"')
        self.keywords = keywords
