"""Email service for sending organization invites via Resend."""

import asyncio
from datetime import datetime
from html import escape
from typing import Optional

import resend

from stencilflow.core.config import settings
from stencilflow.core.logging import logger


def build_invite_url(token: str) -> str:
    """Link the invitee opens to accept an invite."""
    return f"{settings.app_url}/invite/{token}"


def _send_invite_email_sync(
    to_email: str,
    organization_name: str,
    inviter_name: Optional[str],
    invite_url: str,
    expires_at: datetime,
) -> None:
    """Synchronous email sending function to be run in a thread pool."""
    resend.api_key = settings.RESEND_API_KEY

    inviter = escape(inviter_name) if inviter_name else "A teammate"
    organization = escape(organization_name)

    resend.Emails.send(
        {
            "from": settings.RESEND_FROM_EMAIL,
            "to": [to_email],
            "subject": f"You've been invited to join {organization_name} on StencilFlow",
            "html": f"""
<div style="font-family: Arial, sans-serif; font-size: 10pt;">
    <p style="margin: 0 0 15px 0;">Hey,</p>

    <p style="margin: 0 0 15px 0;">
        {inviter} invited you to join <strong>{organization}</strong> on StencilFlow.
    </p>

    <p style="margin: 0 0 15px 0;">
        <a href="{invite_url}" style="color: #0000EE; text-decoration: underline;">Accept the invite</a>
    </p>

    <p style="margin: 15px 0 0 0; color: #666666;">
        This invite expires on {expires_at:%Y-%m-%d %H:%M} UTC.
    </p>
</div>
            """,
        }
    )


async def send_invite_email(
    to_email: str,
    organization_name: str,
    inviter_name: Optional[str],
    invite_url: str,
    expires_at: datetime,
) -> None:
    """Send an organization invite email.

    Only works when both RESEND_API_KEY and RESEND_FROM_EMAIL are configured.
    Uses asyncio.to_thread() to avoid blocking the event loop. Delivery failures are
    logged and never raised: the invite exists either way and the owner can share
    its link by hand.
    """
    if not settings.RESEND_API_KEY or not settings.RESEND_FROM_EMAIL:
        logger.debug("RESEND_API_KEY or RESEND_FROM_EMAIL not configured - skipping invite email")
        return

    try:
        await asyncio.to_thread(
            _send_invite_email_sync,
            to_email,
            organization_name,
            inviter_name,
            invite_url,
            expires_at,
        )
        logger.info(f"Invite email sent to {to_email} for {organization_name}")
    except Exception as e:
        logger.error(f"Failed to send invite email to {to_email}: {e}")
