"""
Error taxonomy for the access-control core.

Every kind maps to a stable `code` and HTTP status so callers can branch on
the cause instead of parsing messages.
"""


class AccessControlError(Exception):
    status_code = 400
    code = "access_control_error"
    default_detail = "Request could not be completed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(AccessControlError):
    status_code = 404
    code = "not_found"
    default_detail = "Resource not found"


class PermissionDenied(AccessControlError):
    status_code = 403
    code = "permission_denied"
    default_detail = "Your role does not allow this action"


class DomainTaken(AccessControlError):
    status_code = 409
    code = "domain_taken"
    default_detail = "This domain is already used by another organization"


class AlreadyMember(AccessControlError):
    status_code = 409
    code = "already_member"
    default_detail = "A user with this email is already in this organization"


class AlreadyInOrganization(AccessControlError):
    status_code = 409
    code = "already_in_organization"
    default_detail = "You already belong to an organization"


class DuplicatePendingInvitation(AccessControlError):
    status_code = 409
    code = "duplicate_pending_invitation"
    default_detail = "An invitation for this email is already pending"


class InvalidOrExpiredInvitation(AccessControlError):
    status_code = 400
    code = "invalid_or_expired_invitation"
    default_detail = "Invalid or expired invitation"


class EmailMismatch(AccessControlError):
    status_code = 403
    code = "email_mismatch"
    default_detail = "This invitation was not sent to your email address"


class CrossOrganizationMismatch(AccessControlError):
    status_code = 403
    code = "cross_organization_mismatch"
    default_detail = "Users are not members of the same organization"


class EmailDeliveryFailed(AccessControlError):
    status_code = 502
    code = "email_delivery_failed"
    default_detail = "The invitation email could not be delivered"


class Conflict(AccessControlError):
    status_code = 409
    code = "conflict"
    default_detail = "The member changed while the request was processed; please retry"


class InvalidAuditAction(AccessControlError):
    status_code = 400
    code = "invalid_audit_action"
    default_detail = "Unknown audit action filter"
