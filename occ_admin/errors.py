"""
Errors — Exception taxonomy shared by every command.

All errors raised on purpose by this package derive from OCCAdminError so the
command boundary (AdminOrchestrator.execute) can report them uniformly and exit
non-zero. Soft outcomes (a 404 during bulk delete, a condition that does not fit
the inferred field type) are not raised; they are recorded or printed as warnings.
"""

from typing import Optional


class OCCAdminError(Exception):
    """Base class for all CLI errors."""


class ConfigurationError(OCCAdminError):
    """Missing or invalid environment configuration."""


class AuthenticationError(OCCAdminError):
    """The client-credential token exchange failed."""


class RemoteRequestError(OCCAdminError):
    """A single REST call failed.

    Attributes:
        status_code: HTTP status of the failed response, or None when the
            request never produced one (connection error, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ValidationError(OCCAdminError):
    """A command argument or input failed validation."""


class InputNotFound(ValidationError):
    """The named input file does not exist."""


class FieldNotPresent(ValidationError):
    """No record in the input carries the requested field."""
