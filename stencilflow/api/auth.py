"""Authentication module for the API."""

from typing import Optional

from fastapi_auth0 import Auth0, Auth0User
from pydantic import BaseModel

from stencilflow.core.config import settings
from stencilflow.core.logging import logger


class Identity(BaseModel):
    """The caller as asserted by the identity provider."""

    sub: str
    email: Optional[str] = None
    name: Optional[str] = None


def identity_from_auth0_user(auth0_user: Optional[Auth0User]) -> Optional[Identity]:
    """Reduce an Auth0 user to the claims the API uses."""
    if auth0_user is None or not auth0_user.id:
        return None
    return Identity(
        sub=auth0_user.id,
        email=getattr(auth0_user, "email", None),
        name=getattr(auth0_user, "name", None),
    )


def _mock_auth0_user() -> Auth0User:
    user = Auth0User(sub="mock-user-id", permissions=[])
    # The email field is aliased to a namespaced claim, so it is set after construction
    user.email = settings.FIRST_SUPERUSER
    return user


# Initialize Auth0 only if authentication is enabled
if settings.AUTH_ENABLED:
    auth0 = Auth0(
        domain=settings.AUTH0_DOMAIN,
        api_audience=settings.AUTH0_AUDIENCE,
        auto_error=False,
    )
else:

    class MockAuth0:
        """A mock Auth0 class that doesn't make network calls for testing/development."""

        def __init__(self):
            """Initialize the mock Auth0 instance."""
            self.domain = "mock-domain.auth0.com"
            self.audience = "https://mock-api/"
            self.algorithms = ["RS256"]
            self.jwks = {"keys": []}
            self.auth0_user_model = Auth0User

        async def get_user(self) -> Auth0User:
            """Always return the first superuser in development mode."""
            return _mock_auth0_user()

    auth0 = MockAuth0()
    logger.info("Using mock Auth0 instance because AUTH_ENABLED=False")
