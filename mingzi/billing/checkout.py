"""Checkout mapping for the payment provider.

Maps a loosely specified checkout request (explicit product id, a tier id,
or nothing at all) onto a concrete product from the configured tiers, then
opens a hosted checkout session.
"""

import logging
import uuid
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..config import PaymentsConfig, get_secret
from ..errors import CheckoutError, PaymentProviderError

logger = logging.getLogger(__name__)


# =============================================================================
# Product tiers
# =============================================================================


class ProductTier(BaseModel):
    name: str
    id: str
    product_id: str
    price: str
    description: str
    features: list[str] = Field(default_factory=list)
    featured: bool = False
    credit_amount: int | None = None
    discount_code: str = ""


SUBSCRIPTION_TIERS: list[ProductTier] = [
    ProductTier(
        name="Starter",
        id="tier-hobby",
        product_id="prod_69mvcFolFoEov7DpBe6GwL",
        price="$11",
        description="Perfect for individuals exploring Chinese names.",
        features=["Monthly credit allowance", "Batch history", "Community support"],
    ),
    ProductTier(
        name="Business",
        id="tier-pro",
        product_id="prod_4EqFWtdtdhTujzZqyK4ab7",
        price="$29",
        description="Ideal for growing teams naming many people.",
        features=["Everything in Starter", "Priority support", "Premium generations"],
        featured=True,
    ),
    ProductTier(
        name="Enterprise",
        id="tier-enterprise",
        product_id="prod_5DujXQmWCPA9ePifaCZ47G",
        price="$99",
        description="For large organizations with advanced requirements.",
        features=["Everything in Business", "Dedicated account manager", "SLA"],
    ),
]

CREDITS_TIERS: list[ProductTier] = [
    ProductTier(
        name="Basic Package",
        id="tier-3-credits",
        product_id="prod_7foku98IYiVVBLak0biXZw",
        price="$9",
        description="3 credits for trying out premium names.",
        credit_amount=3,
        features=["3 credits", "No expiration date", "Standard features"],
    ),
    ProductTier(
        name="Standard Package",
        id="tier-6-credits",
        product_id="prod_7EF8T3CBj5BqhUaF6M0KAS",
        price="$13",
        description="6 credits for a family's worth of names.",
        credit_amount=6,
        features=["6 credits", "No expiration date", "Priority processing"],
        featured=True,
    ),
    ProductTier(
        name="Premium Package",
        id="tier-9-credits",
        product_id="prod_7Vns2Qo4Ij4E94IcPcCCd9",
        price="$29",
        description="9 credits for heavy use.",
        credit_amount=9,
        features=["9 credits", "No expiration date", "Premium support"],
    ),
]


# =============================================================================
# Request mapping
# =============================================================================


class CheckoutRequest(BaseModel):
    """Raw checkout body. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str | None = Field(default=None, alias="productId")
    product_type: str | None = Field(default=None, alias="productType")
    tier_id: str | None = Field(default=None, alias="tierId")
    quantity: int | float | None = None
    discount_code: str | None = Field(default=None, alias="discountCode")


class CheckoutSelection(BaseModel):
    """Concrete product to sell."""

    product_id: str
    product_type: Literal["subscription", "credits"]
    credits_amount: int | None = None
    discount_code: str | None = None


def _featured_or_first(tiers: list[ProductTier]) -> ProductTier | None:
    for tier in tiers:
        if tier.featured:
            return tier
    return tiers[0] if tiers else None


def resolve_checkout(
    request: CheckoutRequest,
    subscription_tiers: list[ProductTier] | None = None,
    credits_tiers: list[ProductTier] | None = None,
) -> CheckoutSelection:
    """Resolve a checkout request to a product.

    Precedence: explicit productId, then tierId within the matching tier
    family, then that family's featured (or first) tier. Anything that is not
    exactly "subscription" is treated as a credits purchase.

    Raises:
        CheckoutError: No product id could be resolved.
    """
    subscription_tiers = SUBSCRIPTION_TIERS if subscription_tiers is None else subscription_tiers
    credits_tiers = CREDITS_TIERS if credits_tiers is None else credits_tiers

    normalized = (request.product_type or "").strip().lower()
    is_subscription = normalized == "subscription"

    product_id = (request.product_id or "").strip() or None
    credits_amount: int | None = None

    if not product_id:
        family = subscription_tiers if is_subscription else credits_tiers
        tier = None
        if request.tier_id:
            tier = next((t for t in family if t.id == request.tier_id), None)
        if tier is None:
            tier = _featured_or_first(family)
        if tier is not None:
            product_id = tier.product_id
            if not is_subscription:
                credits_amount = tier.credit_amount

    if not product_id:
        raise CheckoutError(
            "Missing product mapping. Provide productId or configure product tiers."
        )

    if not is_subscription and request.quantity is not None and request.quantity > 0:
        credits_amount = int(request.quantity)

    return CheckoutSelection(
        product_id=product_id,
        product_type="subscription" if is_subscription else "credits",
        credits_amount=credits_amount if not is_subscription else None,
        discount_code=request.discount_code or None,
    )


# =============================================================================
# Hosted checkout sessions
# =============================================================================


class CheckoutClient:
    """Opens hosted checkout sessions with the payment provider's REST API.

    Args:
        config: Payment settings (base URL, env var names, success URL).
        http: Optional pre-built httpx client (tests pass a mock transport).
    """

    def __init__(self, config: PaymentsConfig, http: httpx.Client | None = None) -> None:
        self.config = config
        self._http = http

    def _client(self) -> httpx.Client:
        if self._http is None:
            api_key = get_secret(self.config.api_key_env)
            if not api_key:
                raise PaymentProviderError(
                    f"Payment API key not found. Set {self.config.api_key_env}."
                )
            self._http = httpx.Client(
                base_url=self.config.api_base_url,
                headers={"x-api-key": api_key},
                timeout=15.0,
            )
        return self._http

    def create_session(
        self,
        selection: CheckoutSelection,
        email: str | None,
        user_id: str,
    ) -> str:
        """Create a checkout session and return its URL.

        The user id, product type and credit amount travel as metadata so the
        webhook can credit the right account.

        Raises:
            CheckoutError: Missing email.
            PaymentProviderError: API key missing, or the provider rejected the request.
        """
        if not email:
            raise CheckoutError("User email not found for checkout")

        metadata: dict[str, Any] = {
            "user_id": user_id,
            "product_type": selection.product_type,
        }
        if selection.credits_amount is not None:
            metadata["credits"] = selection.credits_amount

        body: dict[str, Any] = {
            "product_id": selection.product_id,
            "request_id": f"{user_id}:{uuid.uuid4().hex[:12]}",
            "customer": {"email": email},
            "metadata": metadata,
        }
        if selection.discount_code:
            body["discount_code"] = selection.discount_code
        if self.config.success_url:
            body["success_url"] = self.config.success_url

        try:
            response = self._client().post("/v1/checkouts", json=body)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Checkout session creation failed: %s", e)
            raise PaymentProviderError(f"Failed to create checkout: {e}") from e

        url = data.get("checkout_url") if isinstance(data, dict) else None
        if not url:
            raise PaymentProviderError("Payment provider returned no checkout URL")
        logger.info("Checkout session created for %s (%s)", user_id, selection.product_id)
        return url
