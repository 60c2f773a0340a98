"""Shared exceptions module.

Route handlers never build error responses themselves. Services raise one of these and
the handlers registered in ``stencilflow.main`` translate them into status codes.
"""

from typing import Optional

from pydantic import ValidationError


class StencilFlowException(Exception):
    """Base exception for StencilFlow services."""

    def __init__(self, message: Optional[str] = None):
        """Create a new StencilFlowException instance.

        Args:
        ----
            message (str, optional): The error message.

        """
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)


class UnauthenticatedException(StencilFlowException):
    """Exception raised when a request carries no usable identity."""

    def __init__(self, message: Optional[str] = "No valid authentication provided"):
        """Create a new UnauthenticatedException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class PermissionException(StencilFlowException):
    """Exception raised when a user does not have the necessary permissions to perform an action."""

    def __init__(
        self,
        message: Optional[str] = "User does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class PaymentRequiredException(PermissionException):
    """Exception raised when an action is blocked due to the user's plan or payment status."""

    def __init__(
        self,
        action_type: Optional[str] = None,
        payment_status: Optional[str] = None,
        message: Optional[str] = None,
    ):
        """Create a new PaymentRequiredException instance.

        Args:
        ----
            action_type (str, optional): The type of action that was blocked.
            payment_status (str, optional): The current payment status.
            message (str, optional): Custom error message. If not provided, generates one.

        """
        if message is None:
            if action_type and payment_status:
                message = (
                    f"Action '{action_type}' is not allowed due to payment status: {payment_status}"
                )
            elif action_type:
                message = f"Action '{action_type}' requires an active subscription"
            else:
                message = "This action requires an active subscription"

        self.action_type = action_type
        self.payment_status = payment_status
        super().__init__(message)


class NotFoundException(StencilFlowException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class ConflictException(StencilFlowException):
    """Exception raised when a request would break a state invariant."""

    def __init__(self, message: Optional[str] = "Request conflicts with the current state"):
        """Create a new ConflictException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class InviteAlreadyUsedException(ConflictException):
    """Raised when an invite has already been accepted or cancelled."""

    def __init__(self, status: str):
        """Create a new InviteAlreadyUsedException instance.

        Args:
        ----
            status (str): The terminal status the invite is in.

        """
        self.status = status
        super().__init__(f"Invite has already been {status}")


class MemberLimitExceededException(ConflictException):
    """Raised when an organization has no seats left for another member."""

    def __init__(self, limit: int, current_count: int):
        """Create a new MemberLimitExceededException instance.

        Args:
        ----
            limit (int): The member limit of the organization's tier.
            current_count (int): The current number of members.

        """
        self.limit = limit
        self.current_count = current_count
        super().__init__(f"Organization member limit reached: {current_count}/{limit}")


class InviteExpiredException(StencilFlowException):
    """Raised when an invite is used after its expiry."""

    def __init__(self, message: Optional[str] = "Invite has expired"):
        """Create a new InviteExpiredException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class RateLimitExceededException(StencilFlowException):
    """Raised when an identifier has used up its requests for the current window."""

    def __init__(self, limit: int, remaining: int, reset: int):
        """Create a new RateLimitExceededException instance.

        Args:
        ----
            limit (int): Requests allowed per window.
            remaining (int): Requests left in the window.
            reset (int): Unix timestamp (seconds) at which the window resets.

        """
        self.limit = limit
        self.remaining = remaining
        self.reset = reset
        super().__init__("Too many requests")


class ExternalServiceError(StencilFlowException):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}")


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        error_messages.append({field: error["msg"]})

    return {"errors": error_messages}
