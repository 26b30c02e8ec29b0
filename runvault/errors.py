"""Vault error taxonomy.

Every error raised by the services derives from VaultError and carries the
HTTP status the API layer should answer with.
"""


class VaultError(Exception):
    """Base exception for vault operations."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFound(VaultError):
    """Folder, event or photo does not exist."""
    status_code = 404


class Conflict(VaultError):
    """Slug collision among siblings."""
    status_code = 409


class Forbidden(VaultError):
    """Requester may not perform the operation."""
    status_code = 403


class InvalidOperation(VaultError):
    """Operation is not allowed on this kind of folder, or input is empty."""
    status_code = 400


class CorruptTree(VaultError):
    """Ancestor or descendant walk exceeded the depth cap."""
    status_code = 500


class UpstreamFailure(VaultError):
    """Object store or relational store transport error."""
    status_code = 500
