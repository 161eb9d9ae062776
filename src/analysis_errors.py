"""
Error types raised by the analysis pipeline.

UserFacingError subclasses describe problems the uploader can fix (empty file,
wrong export). Everything else is treated as an internal failure by callers.
"""


class AnalysisError(Exception):
    """Base class for all analysis pipeline errors."""


class UserFacingError(AnalysisError):
    """An error whose message can be shown to the person who uploaded the files."""


class ParseError(AnalysisError):
    """The delimited-text parser failed and produced no rows."""


class EmptyFileError(UserFacingError):
    def __init__(self, label="File"):
        self.label = label
        super().__init__(f"{label} appears to be empty or unreadable.")


class FormatMismatchError(UserFacingError):
    def __init__(self, message, headers=None):
        self.headers = list(headers or [])
        super().__init__(message)


def is_user_error(exc):
    """True when exc should be reported back to the uploader (400-class)."""
    return isinstance(exc, UserFacingError)
