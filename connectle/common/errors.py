"""
Error taxonomy for the Connectle chat service.

Store and evaluator failures are raised as ChatError subclasses. The chat hub
turns them into ``error`` replies, so they never cross the transport boundary.
"""


class ChatError(Exception):
    """Base class for every expected, user-facing failure."""

    code = 'chat_error'

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class ValidationError(ChatError):
    """Malformed input: too short, too long, missing field."""

    code = 'validation_error'


class ConflictError(ChatError):
    """Username or email already taken."""

    code = 'conflict_error'


class AuthError(ChatError):
    """Bad credentials or no session bound to the connection."""

    code = 'auth_error'


class NotFoundError(ChatError):
    """Unknown username."""

    code = 'not_found_error'


class SelfReferenceError(ChatError):
    code = 'self_reference_error'


class SelfMessageError(SelfReferenceError):
    code = 'self_message_error'


class SelfContactError(SelfReferenceError):
    code = 'self_contact_error'


class EvaluationError(ChatError):
    """Calculator expression could not be evaluated."""

    code = 'evaluation_error'


class ExpressionSyntaxError(EvaluationError):
    code = 'syntax_error'


class DivideByZeroError(EvaluationError, ZeroDivisionError):
    code = 'divide_by_zero_error'


class ExternalUnavailableError(ChatError):
    """A third-party service timed out or answered with garbage."""

    code = 'external_unavailable_error'
