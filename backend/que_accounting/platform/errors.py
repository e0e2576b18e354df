"""
Structured error taxonomy for the authorization core and adjacent services.

Every rejection is an AppError subclass carrying an HTTP status and a
machine-readable error_code. Handlers in platform.responses translate them
into the uniform {success:false, message, data:null} envelope with an
X-Error-Code header. All stages fail closed: a rejection terminates the
request, it is never downgraded into a partial allow.
"""

from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base exception for all application errors surfaced to clients."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None):
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert to the error envelope body."""
        return {"success": False, "message": self.message, "data": None}


# --- Authentication ---


class AuthRequiredError(AppError):
    """Missing or unparseable bearer token."""
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "auth_required"
    default_message = "Authentication required"


class TokenInvalidError(AppError):
    """
    Token failed verification.

    reason distinguishes expired, malformed, signature, not_yet_valid,
    issuer, audience and wrong_token_type failures.
    """
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "token_invalid"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(
            message or f"Invalid token: {reason}",
            error_code=f"token_{reason}",
        )


class InvalidCredentialsError(AppError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "invalid_credentials"
    default_message = "Invalid credentials"


class AccountInactiveError(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "account_inactive"
    default_message = "Account is inactive"


# --- Tenant resolution ---


class NoActiveBusinessError(AppError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "no_active_business"
    default_message = "No active business selected"


class NotAMemberError(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "not_a_member"
    default_message = "You are not a member of this business"


class MembershipDisabledError(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "membership_disabled"
    default_message = "Your access to this business is disabled"


class BusinessInactiveError(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "business_inactive"
    default_message = "Business is inactive"


# --- Subscription and permissions ---


class SubscriptionInactiveError(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "subscription_inactive"
    default_message = "Subscription inactive or expired"


class PermissionDeniedError(AppError):
    """Permission evaluator rejection for a specific (module, action)."""
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "permission_denied"

    def __init__(self, module: str, action: str):
        self.module = module
        self.action = action
        super().__init__(f"Permission denied: {module}.{action}")


class SuperAdminRequiredError(AppError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "super_admin_required"
    default_message = "Subscription administrator access required"


class UserAccountRequiredError(AppError):
    """Authenticated principal without a stored user account (bootstrap admin)."""
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "user_account_required"
    default_message = "This operation requires a user account"


# --- Provisioning and resources ---


class ProvisioningFailedError(AppError):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "provisioning_failed"
    default_message = "Business provisioning failed"


class NotFoundError(AppError):
    http_status = status.HTTP_404_NOT_FOUND
    error_code = "not_found"
    default_message = "Resource not found"


class ConflictError(AppError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "conflict"
    default_message = "Resource already exists"


class ValidationFailedError(AppError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "validation_failed"
    default_message = "Invalid request"


class LastAdminError(AppError):
    """Raised when an operation would remove a business's Admin membership."""
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "last_admin"
    default_message = "Cannot remove an Admin membership from the business"


class OwnerMembershipError(AppError):
    """Raised when an operation targets the business owner's own membership."""
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "owner_membership"
    default_message = "The business owner's membership cannot be disabled, demoted or cancelled"
