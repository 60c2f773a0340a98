"""Stripe API client.

Only what the webhook needs: verifying event signatures and reading subscriptions.
"""

from typing import Optional

import stripe

from stencilflow.core.config import settings
from stencilflow.core.exceptions import ExternalServiceError


class StripeClient:
    """Client for Stripe API operations."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """Initialize Stripe client.

        Args:
            secret_key: Stripe secret key. Defaults to STRIPE_SECRET_KEY.
            webhook_secret: Webhook signing secret. Defaults to STRIPE_WEBHOOK_SECRET.
        """
        if not settings.STRIPE_ENABLED and not (secret_key and webhook_secret):
            raise ValueError("Stripe is not enabled in settings")

        stripe.api_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    def verify_webhook_signature(self, payload: bytes, signature: str) -> stripe.Event:
        """Verify and construct webhook event.

        Raises:
            ValueError: If the payload is malformed or the signature does not match.
        """
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise ValueError(f"Invalid webhook payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid webhook signature: {e}") from e

    async def retrieve_subscription(self, subscription_id: str) -> stripe.Subscription:
        """Retrieve a subscription."""
        try:
            return await stripe.Subscription.retrieve_async(subscription_id)
        except stripe.StripeError as e:
            raise ExternalServiceError(
                service_name="Stripe",
                message=f"Failed to retrieve subscription: {str(e)}",
            ) from e


stripe_client = StripeClient() if settings.STRIPE_ENABLED else None
