"""Billing: usage quota and credits, checkout mapping, webhook verification."""

from .checkout import (
    CREDITS_TIERS,
    SUBSCRIPTION_TIERS,
    CheckoutClient,
    CheckoutRequest,
    CheckoutSelection,
    ProductTier,
    resolve_checkout,
)
from .quota import Admission, QuotaGate, resolve_client_ip
from .webhook import verify_webhook_signature

__all__ = [
    "Admission",
    "CREDITS_TIERS",
    "SUBSCRIPTION_TIERS",
    "CheckoutClient",
    "CheckoutRequest",
    "CheckoutSelection",
    "ProductTier",
    "QuotaGate",
    "resolve_checkout",
    "resolve_client_ip",
    "verify_webhook_signature",
]
