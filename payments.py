"""Stripe payment intents over the REST API."""
import logging

import requests
from fastapi import HTTPException

import settings

logger = logging.getLogger(__name__)


def create_payment_intent(price_usd: int) -> dict:
    """Create a card payment intent for ``price_usd`` dollars and return Stripe's JSON."""
    if not settings.STRIPE_SECRET_KEY:
        raise HTTPException(status_code=500, detail="Payments not configured")
    amount = int(price_usd * 100)
    try:
        resp = requests.post(
            f"{settings.STRIPE_API_BASE}/payment_intents",
            auth=(settings.STRIPE_SECRET_KEY, ""),
            data={
                "amount": amount,
                "currency": "usd",
                "payment_method_types[]": "card",
            },
            timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.error("Payment provider unreachable: %s", e)
        raise HTTPException(status_code=502, detail="Payment provider unavailable")
    if resp.status_code != 200:
        logger.error("Payment intent rejected (%s): %s", resp.status_code, resp.text[:200])
        raise HTTPException(status_code=502, detail="Payment provider error")
    return resp.json()
