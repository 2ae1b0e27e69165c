"""Domain errors raised by the identity, workflow and storage layers.

Each error carries a machine-readable ``kind`` and the HTTP status it maps to.
The transport layer renders them as ``{"detail": ..., "kind": ...}``; messages
never contain passwords or password hashes.
"""


class PortalError(Exception):
    kind = "PortalError"
    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class DuplicateEmail(PortalError):
    kind = "DuplicateEmail"
    status_code = 400
    default_detail = "Email already registered"


class RequiresComment(PortalError):
    kind = "RequiresComment"
    status_code = 400
    default_detail = "A comment is required when reverting"


class InvalidAssignee(PortalError):
    kind = "InvalidAssignee"
    status_code = 400
    default_detail = "Tasks can only be assigned to user accounts"


class InvalidCredential(PortalError):
    kind = "InvalidCredential"
    status_code = 401
    default_detail = "Invalid credentials"


class PendingApproval(PortalError):
    kind = "PendingApproval"
    status_code = 403
    default_detail = "Manager account is pending admin approval"


class Forbidden(PortalError):
    kind = "Forbidden"
    status_code = 403
    default_detail = "Not allowed"


class NotFound(PortalError):
    kind = "NotFound"
    status_code = 404
    default_detail = "Not found"


class InvalidTransition(PortalError):
    kind = "InvalidTransition"
    status_code = 409
    default_detail = "Operation not allowed in the current state"


class RequiresPasswordLinkage(PortalError):
    kind = "RequiresPasswordLinkage"
    status_code = 409
    default_detail = "An account with this email exists; sign in with your password to link it"


class Conflict(PortalError):
    kind = "Conflict"
    status_code = 409
    default_detail = "The entity was modified by someone else"


class FileTooLarge(PortalError):
    kind = "FileTooLarge"
    status_code = 413
    default_detail = "File is too large"


class ProviderUnavailable(PortalError):
    kind = "ProviderUnavailable"
    status_code = 502
    default_detail = "Identity provider unavailable"


class StorageUnavailable(PortalError):
    kind = "StorageUnavailable"
    status_code = 503
    default_detail = "Storage unavailable"
