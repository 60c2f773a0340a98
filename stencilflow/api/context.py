"""Unified application context for API requests.

Bundles the authenticated user, the request id and a logger carrying both into a
single injectable dependency.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from stencilflow import schemas
from stencilflow.core.logging import ContextualLogger


class ApiContext(BaseModel):
    """Unified context for API requests."""

    model_config = ConfigDict(arbitrary_types_allowed=True)  # For ContextualLogger

    request_id: str
    user: schemas.User
    auth_method: str  # "auth0" or "system"

    # Contextual logger with all dimensions pre-configured
    logger: ContextualLogger

    @property
    def user_id(self) -> UUID:
        """ID of the authenticated user."""
        return self.user.id

    @property
    def tracking_email(self) -> Optional[str]:
        """Email to use for UserMixin tracking."""
        return self.user.email

    def __str__(self) -> str:
        """String representation for logging."""
        return (
            f"ApiContext(request_id={self.request_id[:8]}..., "
            f"method={self.auth_method}, user={self.user.email})"
        )
