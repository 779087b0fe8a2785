"""
Exception hierarchy for the orchestrator core.

Authentication failures are recovered inside the session manager and
collapse to ``False``. Everything else propagates to the caller, which is
responsible for showing it to the user.
"""


class HouseholdError(Exception):
    """Base exception for the household finance core."""
    pass


class AuthenticationError(HouseholdError):
    """Login did not produce a usable session."""
    pass


class InvalidCredentialsError(AuthenticationError):
    """No user matches the identifier/password pair."""
    pass


class InsufficientRoleError(AuthenticationError):
    """Credentials matched, but the admin entry point needs an admin role."""
    pass


class NoActiveSessionError(HouseholdError):
    """Operation requires a signed-in user."""
    pass


class UnknownUserError(HouseholdError, ValueError):
    """An expense references a user that does not exist."""
    pass
