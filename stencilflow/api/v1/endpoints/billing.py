"""Billing endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stencilflow.api import deps
from stencilflow.core.config import settings
from stencilflow.core.logging import logger
from stencilflow.core.stripe_webhook_handler import StripeWebhookHandler
from stencilflow.integrations.stripe_client import StripeClient

router = APIRouter()


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    stripe_client: Optional[StripeClient] = Depends(deps.get_stripe_client),
) -> Response:
    """Handle Stripe webhook events.

    Security:
    - Verifies webhook signature

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        db: Database session
        stripe_client: Client holding the webhook signing secret

    Returns:
        200 OK on success, 400 on a bad signature, 500 when processing failed so
        Stripe retries the delivery
    """
    if not settings.STRIPE_ENABLED:
        return Response(status_code=200)

    payload = await request.body()

    if not stripe_signature:
        return Response(status_code=400)

    if not stripe_client:
        return Response(status_code=500)

    try:
        event = stripe_client.verify_webhook_signature(payload, stripe_signature)
    except ValueError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return Response(status_code=400)

    try:
        await StripeWebhookHandler(db, stripe_client).handle_event(event)
    except Exception:
        # Already logged by the handler
        return Response(status_code=500)
    return Response(status_code=200)
