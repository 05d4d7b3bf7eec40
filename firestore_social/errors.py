class SocialError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ConfigurationError(SocialError):
    """A required setting (API key, upload preset, ...) is missing."""


class AuthenticationError(SocialError):
    """
    Sign-in or sign-up failed.

    ``message`` is the inline text shown next to the form, ``code`` the
    identity provider's error code when there is one.
    """

    def __init__(self, message: str = "", code: str = ""):
        super().__init__(message)
        self.code = code


class UploadError(SocialError):
    """The image upload service rejected the file."""


class UsernameTakenError(SocialError):
    def __init__(self, username: str):
        super().__init__("Username is already taken. Please choose another one.")
        self.username = username


class NotFoundError(SocialError):
    pass


class PermissionDeniedError(SocialError):
    """The session's user does not own the document it tried to change."""
