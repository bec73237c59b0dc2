"""
Structured registry errors.

Every failure the registry detects carries an HTTP status and a human-readable
message. They are raised where the problem is found and travel unmodified to
the Flask error handler, which is the only place they become wire responses.
"""

from werkzeug.exceptions import HTTPException


class RegistryError(HTTPException):
    """Base class: a (status, message) pair raised by the registry."""

    # Left unset so one Flask handler registered for this class covers every subclass
    code = None

    def __init__(self, message: str):
        super().__init__(description=message)

    @property
    def status(self) -> int:
        return self.code

    @property
    def message(self) -> str:
        return self.description

    def __repr__(self):
        return f"{type(self).__name__}({self.code}, {self.description!r})"


class BadRequest(RegistryError):
    code = 400


class Unauthorized(RegistryError):
    code = 401


class Forbidden(RegistryError):
    code = 403


class NotFound(RegistryError):
    code = 404


class NotEnabled(RegistryError):
    """Package management is switched off for the scope or not licensed."""

    code = 406


class PayloadTooLarge(RegistryError):
    code = 413
