"""
Custom exceptions and error handling for the deal room core.

Provides:
- Typed exception hierarchy for each failure mode (validation, auth,
  subscription, submission, negotiation lifecycle)
- Error context preservation for debugging
- Mapping of backend auth codes to user-facing messages
"""

from typing import Any


class DealroomError(Exception):
    """Base exception for all deal room errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Local Errors
# =============================================================================


class ValidationError(DealroomError):
    """
    Input validation failed before any network call.

    Always names the offending field so the caller can surface it next to
    the matching input instead of as a generic failure.
    """

    def __init__(
        self,
        message: str,
        field: str,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)
        self.field = field

    def __str__(self) -> str:
        return f"{self.field}: {super().__str__()}"


# =============================================================================
# Auth Errors
# =============================================================================

GENERIC_AUTH_MESSAGE = 'An unexpected error occurred. Please try again.'

AUTH_MESSAGES: dict[str, str] = {
    'auth/user-not-found': 'Invalid email or password. Please try again.',
    'auth/wrong-password': 'Invalid email or password. Please try again.',
    'auth/invalid-credential': 'Invalid email or password. Please try again.',
    'auth/email-already-in-use': 'This email address is already registered.',
    'auth/weak-password': 'Password should be at least 6 characters.',
}


class AuthError(DealroomError):
    """Sign-in, sign-up or sign-out failed; message is safe to show the user."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)
        self.code = code


def auth_error_from_code(code: str | None, context: dict[str, Any] | None = None) -> AuthError:
    """Build an AuthError carrying the known message for ``code``, or the generic one."""
    message = AUTH_MESSAGES.get(code or '', GENERIC_AUTH_MESSAGE)
    return AuthError(message, code=code, context=context)


def wrap_auth_error(exc: Exception, context: dict[str, Any] | None = None) -> AuthError:
    """
    Wrap a backend auth exception in our typed error hierarchy.

    Args:
        exc: The original exception (a ``code`` attribute is used when present)
        context: Additional context for debugging

    Returns:
        AuthError with a user-facing message
    """
    if isinstance(exc, AuthError):
        return exc
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__
    return auth_error_from_code(getattr(exc, 'code', None), context=ctx)


# =============================================================================
# Async Collaboration Errors
# =============================================================================


class SubscriptionError(DealroomError):
    """
    A live catalog subscription failed (transport or permission).

    Non-fatal: the catalog is reported as unavailable, not empty.
    """

    pass


class SubmissionError(DealroomError):
    """The backend rejected a negotiation request."""

    pass


GENERIC_SUBMISSION_MESSAGE = 'Failed to start negotiation.'


def wrap_submission_error(
    exc: Exception,
    context: dict[str, Any] | None = None,
) -> SubmissionError:
    """Wrap a backend failure from startNegotiation, keeping its message when it has one."""
    ctx = context or {}
    ctx['error_type'] = type(exc).__name__
    message = getattr(exc, 'message', None) or str(exc) or GENERIC_SUBMISSION_MESSAGE
    return SubmissionError(message, context=ctx)


class NegotiationStateError(DealroomError):
    """A negotiation transition is not allowed for this status or party."""

    pass


# =============================================================================
# Backend Errors
# =============================================================================


class BackendError(DealroomError):
    """Base class for errors raised by a persistence/identity backend."""

    pass


class NotFoundError(BackendError):
    """Requested record does not exist in the backend."""

    pass
