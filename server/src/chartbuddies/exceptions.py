"""Custom exceptions for the Chartbuddies profile gate."""

PROFILE_NOT_FOUND_MESSAGE = "User profile not found. Please contact administrator."


class ProfileNotFoundError(Exception):
    """Raised when no profile could be resolved or created for a user."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(PROFILE_NOT_FOUND_MESSAGE)


class ProfileCreateError(Exception):
    """Raised when the privileged profile insert fails."""

    def __init__(self, user_id: str, reason: str, code: str | None = None) -> None:
        self.user_id = user_id
        self.reason = reason
        self.code = code
        super().__init__(f"Profile create failed for {user_id}: {reason}")


class ProfileConflictError(ProfileCreateError):
    """Raised when the insert hit a uniqueness violation (row already exists)."""


class InvalidCredentialsError(Exception):
    """Raised when the identity provider rejects a sign-in."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        self.message = message
        super().__init__(message)
