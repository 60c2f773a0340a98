"""Configuration settings for the StencilFlow backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import Field, PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prd).
        FRONTEND_LOCAL_DEVELOPMENT_PORT (int): Port for local frontend development.
        FIRST_SUPERUSER (str): The email address of the first superuser. Used as the
            identity of every request when AUTH_ENABLED is False.
        ADMIN_EMAILS (Optional[str]): Comma separated emails that are always treated as admins.
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[str]): The SQLAlchemy async database URI.
        RUN_ALEMBIC_MIGRATIONS (bool): Whether to run the alembic migrations on startup.
        REDIS_HOST (Optional[str]): The Redis server hostname. Rate limit counters are kept
            in process memory when unset.
        REDIS_PORT (int): The Redis server port.
        REDIS_PASSWORD (Optional[str]): The Redis password (if authentication is enabled).
        REDIS_DB (int): The Redis database number.
        RATE_LIMIT_ENABLED (bool): Whether mutating endpoints are rate limited.
        RATE_LIMIT_REQUESTS (int): Requests allowed per identifier and window.
        RATE_LIMIT_WINDOW_SECONDS (int): Length of the fixed rate limit window.
        INVITE_EXPIRATION_HOURS (int): Lifetime of an organization invite.
        RESEND_API_KEY (Optional[str]): Resend API key for transactional email.
        RESEND_FROM_EMAIL (Optional[str]): Sender address for transactional email.
        STRIPE_ENABLED (bool): Whether the Stripe webhook is processed.
        STRIPE_SECRET_KEY (Optional[str]): Stripe secret key.
        STRIPE_WEBHOOK_SECRET (Optional[str]): Stripe webhook signing secret.
        APP_FULL_URL (Optional[str]): The full URL of the web app, used in invite links.
        ADDITIONAL_CORS_ORIGINS (Optional[list[str]]): Additional CORS origins separated by commas.
    """

    PROJECT_NAME: str = "StencilFlow"
    LOCAL_DEVELOPMENT: bool = False
    ENVIRONMENT: str = "local"
    FRONTEND_LOCAL_DEVELOPMENT_PORT: int = 3000

    FIRST_SUPERUSER: str = "admin@stencilflow.com"
    ADMIN_EMAILS: Optional[str] = None  # Separated by commas

    AUTH_ENABLED: Optional[bool] = False
    AUTH0_DOMAIN: Optional[str] = Field(None, validate_default=True)
    AUTH0_AUDIENCE: Optional[str] = Field(None, validate_default=True)
    AUTH0_RULE_NAMESPACE: Optional[str] = None

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_DB: str = "stencilflow"
    POSTGRES_USER: str = "stencilflow"
    POSTGRES_PASSWORD: str = "stencilflow"
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[str] = Field(None, validate_default=True)

    RUN_ALEMBIC_MIGRATIONS: bool = False

    # Redis configuration
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 60
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    INVITE_EXPIRATION_HOURS: int = 168

    # Email
    RESEND_API_KEY: Optional[str] = None
    RESEND_FROM_EMAIL: Optional[str] = "StencilFlow <noreply@stencilflow.com>"

    # Billing
    STRIPE_ENABLED: bool = False
    STRIPE_SECRET_KEY: Optional[str] = Field(None, validate_default=True)
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(None, validate_default=True)

    API_FULL_URL: Optional[str] = None
    APP_FULL_URL: Optional[str] = None
    ADDITIONAL_CORS_ORIGINS: Optional[str] = None  # Separated by commas or semicolons

    @field_validator("AUTH0_DOMAIN", "AUTH0_AUDIENCE", mode="before")
    def validate_auth0_settings(cls, v: str, info: ValidationInfo) -> str:
        """Validate Auth0 settings when AUTH_ENABLED is True.

        Args:
        ----
            v (str): The value of the Auth0 setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The validated Auth0 setting.

        Raises:
        ------
            ValueError: If AUTH_ENABLED is True and the Auth0 setting is empty.
        """
        auth_enabled = info.data.get("AUTH_ENABLED", False)
        if auth_enabled and not v:
            field_name = info.field_name
            raise ValueError(f"{field_name} must be set when AUTH_ENABLED is True")
        return v

    @field_validator("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", mode="before")
    def validate_stripe_settings(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Require the Stripe secrets when STRIPE_ENABLED is True."""
        if info.data.get("STRIPE_ENABLED", False) and not v:
            raise ValueError(f"{info.field_name} must be set when STRIPE_ENABLED is True")
        return v

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Build the SQLAlchemy database URI.

        An explicit URI wins, which is how local runs and tests point at SQLite.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=info.data.get("POSTGRES_USER"),
                password=info.data.get("POSTGRES_PASSWORD"),
                host=info.data.get("POSTGRES_HOST", "localhost"),
                path=f"{info.data.get('POSTGRES_DB') or ''}",
            )
        )

    @property
    def admin_emails(self) -> set[str]:
        """Lower-cased admin emails parsed from ADMIN_EMAILS."""
        if not self.ADMIN_EMAILS:
            return set()
        return {email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()}

    @property
    def redis_enabled(self) -> bool:
        """Whether a Redis server is configured."""
        return bool(self.REDIS_HOST)

    @property
    def api_url(self) -> str:
        """The server URL.

        Returns:
            str: The server URL.
        """
        if self.API_FULL_URL:
            return self.API_FULL_URL

        if self.ENVIRONMENT == "local":
            return "http://localhost:8001"
        if self.ENVIRONMENT == "prd":
            return "https://api.stencilflow.com"
        return f"https://api.{self.ENVIRONMENT}.stencilflow.com"

    @property
    def app_url(self) -> str:
        """The app URL.

        Returns:
            str: The app URL.
        """
        if self.APP_FULL_URL:
            return self.APP_FULL_URL

        if self.ENVIRONMENT == "local":
            return f"http://localhost:{self.FRONTEND_LOCAL_DEVELOPMENT_PORT}"
        if self.ENVIRONMENT == "prd":
            return "https://app.stencilflow.com"
        return f"https://app.{self.ENVIRONMENT}.stencilflow.com"


settings = Settings()
