"""
Outbound email.

Delivery is fire-and-forget: routes schedule ``send_email`` as a FastAPI
background task, and any failure is logged and dropped so it can never fail
the request that triggered it.
"""
import logging
from typing import Optional

import httpx

from config.settings import EMAIL_FROM, EMAIL_TIMEOUT_SECONDS, EMAIL_WEBHOOK_URL

logger = logging.getLogger(__name__)


async def send_email(
    to: str,
    subject: str,
    html: str,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    if not EMAIL_WEBHOOK_URL:
        logger.info("email_skipped reason=no_webhook subject=%s", subject)
        return False

    payload = {"from": EMAIL_FROM, "to": to, "subject": subject, "html": html}
    try:
        if client is not None:
            r = await client.post(EMAIL_WEBHOOK_URL, json=payload)
        else:
            async with httpx.AsyncClient(timeout=EMAIL_TIMEOUT_SECONDS) as c:
                r = await c.post(EMAIL_WEBHOOK_URL, json=payload)
        r.raise_for_status()
        return True
    except httpx.HTTPError as exc:
        logger.warning("email_failed subject=%s error=%s", subject, type(exc).__name__)
        return False


def otp_email(name: str, otp: str, purpose: str) -> tuple[str, str]:
    if purpose == "login":
        subject = "Your Homevest login code"
        intro = "Use the code below to finish signing in."
    elif purpose == "reset":
        subject = "Reset your Homevest password"
        intro = "Use the code below to choose a new password."
    else:
        subject = "Verify your Homevest account"
        intro = "Use the code below to verify your email address."
    html = (
        f"<p>Hi {name},</p>"
        f"<p>{intro}</p>"
        f"<p style=\"font-size:24px;letter-spacing:4px\"><strong>{otp}</strong></p>"
        "<p>The code expires in 5 minutes.</p>"
    )
    return subject, html
