"""Webhook handler for processing Stripe events."""

from typing import Any, Optional
from uuid import UUID

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow import crud, schemas
from stencilflow.core.datetime_utils import from_unix_timestamp
from stencilflow.core.logging import ContextualLogger, logger
from stencilflow.core.organization_service import organization_service
from stencilflow.core.shared_models import SubscriptionStatus, UserPlan
from stencilflow.integrations.stripe_client import StripeClient
from stencilflow.models.user import User


def _field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object, None when it is missing."""
    return getattr(obj, name, None)


def map_subscription_status(status: Optional[str]) -> SubscriptionStatus:
    """Map a Stripe subscription status onto ours. Unknown statuses are inactive."""
    try:
        return SubscriptionStatus(status)
    except ValueError:
        return SubscriptionStatus.INACTIVE


class StripeWebhookHandler:
    """Handle Stripe webhook events by updating users and organizations."""

    def __init__(self, db: AsyncSession, stripe_client: Optional[StripeClient] = None):
        """Initialize webhook handler with database session.

        Args:
            db: Database session for processing events
            stripe_client: Used to look up the subscription behind a checkout session
        """
        self.db = db
        self.stripe_client = stripe_client

        self.event_handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_failed": self._handle_payment_failed,
        }

    async def handle_event(self, event: stripe.Event) -> None:
        """Process a Stripe webhook event.

        Events without a handler are logged and ignored. Handler errors are logged
        and re-raised so Stripe retries the delivery.
        """
        contextual_logger = logger.with_context(
            auth_method="stripe_webhook", event_type=event.type, stripe_event_id=event.id
        )

        handler = self.event_handlers.get(event.type)
        if handler is None:
            contextual_logger.info(f"Unhandled webhook event type: {event.type}")
            return

        try:
            contextual_logger.info(f"Processing webhook event: {event.type}")
            await handler(event, contextual_logger)
        except Exception as e:
            contextual_logger.error(f"Error handling {event.type}: {e}", exc_info=True)
            raise

    async def _find_checkout_user(self, session: Any) -> Optional[User]:
        metadata = _field(session, "metadata") or {}

        user_id = metadata.get("user_id")
        if user_id:
            try:
                user = await crud.user.get(self.db, id=UUID(user_id))
            except ValueError:
                user = None
            if user:
                return user

        client_reference_id = _field(session, "client_reference_id")
        if client_reference_id:
            user = await crud.user.get_by_auth0_id(self.db, auth0_id=client_reference_id)
            if user:
                return user

        customer_details = _field(session, "customer_details")
        email = _field(session, "customer_email") or _field(customer_details, "email")
        if email:
            return await crud.user.get_by_email(self.db, email=email)
        return None

    async def _handle_checkout_completed(
        self, event: stripe.Event, contextual_logger: ContextualLogger
    ) -> None:
        """Activate the paid plan of the user who completed checkout.

        The plan comes from the session metadata and defaults to starter.
        """
        session = event.data.object
        user = await self._find_checkout_user(session)
        if user is None:
            contextual_logger.warning(f"No user found for checkout session {session.id}")
            return

        metadata = _field(session, "metadata") or {}
        try:
            plan = UserPlan(metadata.get("plan") or UserPlan.STARTER.value)
        except ValueError:
            contextual_logger.warning(f"Unknown plan '{metadata.get('plan')}', using starter")
            plan = UserPlan.STARTER

        subscription_id = _field(session, "subscription")
        status = SubscriptionStatus.ACTIVE
        expires_at = None
        if subscription_id and self.stripe_client:
            subscription = await self.stripe_client.retrieve_subscription(subscription_id)
            status = map_subscription_status(_field(subscription, "status"))
            expires_at = from_unix_timestamp(_field(subscription, "current_period_end"))

        await crud.user.update(
            self.db,
            db_obj=user,
            obj_in=schemas.UserUpdate(
                plan=plan,
                subscription_status=status,
                subscription_id=subscription_id,
                subscription_expires_at=expires_at,
            ),
        )
        contextual_logger.info(f"User {user.id} subscribed to {plan.value} ({status.value})")

    async def _handle_subscription_updated(
        self, event: stripe.Event, contextual_logger: ContextualLogger
    ) -> None:
        """Track status and period changes on the subscriber and the organization."""
        subscription = event.data.object
        status = map_subscription_status(_field(subscription, "status"))
        expires_at = from_unix_timestamp(_field(subscription, "current_period_end"))

        user = await crud.user.get_by_subscription_id(self.db, subscription_id=subscription.id)
        if user:
            changes = {"subscription_status": status.value}
            if expires_at is not None:
                changes["subscription_expires_at"] = expires_at
            await crud.user.update(self.db, db_obj=user, obj_in=changes)

        organization = await organization_service.update_subscription(
            self.db, subscription_id=subscription.id, status=status, expires_at=expires_at
        )
        if user is None and organization is None:
            contextual_logger.warning(f"No subscriber found for subscription {subscription.id}")
            return
        contextual_logger.info(f"Subscription {subscription.id} is now {status.value}")

    async def _handle_subscription_deleted(
        self, event: stripe.Event, contextual_logger: ContextualLogger
    ) -> None:
        """Return the subscriber to the free plan and archive the funded organization."""
        subscription = event.data.object

        user = await crud.user.get_by_subscription_id(self.db, subscription_id=subscription.id)
        if user:
            await crud.user.update(
                self.db,
                db_obj=user,
                obj_in=schemas.UserUpdate(
                    plan=UserPlan.FREE, subscription_status=SubscriptionStatus.CANCELED
                ),
            )
            contextual_logger.info(f"User {user.id} returned to the free plan")

        organization = await crud.organization.get_by_subscription_id(
            self.db, subscription_id=subscription.id
        )
        if organization:
            await organization_service.archive_organization(self.db, organization.id)

    async def _handle_payment_failed(
        self, event: stripe.Event, contextual_logger: ContextualLogger
    ) -> None:
        """Mark the subscription behind a failed invoice as past due."""
        invoice = event.data.object
        subscription_id = _field(invoice, "subscription")
        if not subscription_id:
            contextual_logger.info(f"Invoice {invoice.id} has no subscription, ignoring")
            return

        user = await crud.user.get_by_subscription_id(self.db, subscription_id=subscription_id)
        if user:
            await crud.user.update(
                self.db,
                db_obj=user,
                obj_in={"subscription_status": SubscriptionStatus.PAST_DUE.value},
            )
        await organization_service.update_subscription(
            self.db, subscription_id=subscription_id, status=SubscriptionStatus.PAST_DUE
        )
        contextual_logger.warning(f"Payment failed for subscription {subscription_id}")
