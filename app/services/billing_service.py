"""
InvoiceFlow - Billing Service

Plan catalogue, plan purchases and the OxaPay crypto payment gateway.

Flow:
1. purchase_plan() opens a pending PlanPurchase and an OxaPay invoice
2. The user pays on the OxaPay hosted page
3. OxaPay posts a signed callback; process_callback() marks the purchase
   paid and activates the plan

The return URL the user lands on afterwards never activates anything.
"""

import hashlib
import hmac
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.billing import BillingCycle, PlanPurchase, PurchaseStatus
from app.models.user import User, UserPlan
from app.utils.error_handling import PaymentGatewayException

logger = logging.getLogger(__name__)


# =============================================================================
# PLAN CATALOGUE
# =============================================================================

@dataclass(frozen=True)
class PlanPrice:
    """Price of a plan for one billing cycle."""
    inr: Decimal
    usd: Decimal


@dataclass(frozen=True)
class PlanDefinition:
    """A purchasable plan."""
    plan: UserPlan
    name: str
    monthly: PlanPrice
    yearly: PlanPrice
    features: List[str] = field(default_factory=list)
    trial_days: int = 0
    is_popular: bool = False

    def price_for(self, cycle: BillingCycle) -> PlanPrice:
        return self.yearly if cycle == BillingCycle.YEARLY else self.monthly

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.plan.value,
            "name": self.name,
            "price_monthly_inr": float(self.monthly.inr),
            "price_monthly_usd": float(self.monthly.usd),
            "price_yearly_inr": float(self.yearly.inr),
            "price_yearly_usd": float(self.yearly.usd),
            "features": list(self.features),
            "trial_days": self.trial_days,
            "is_popular": self.is_popular,
        }


PLANS: Dict[UserPlan, PlanDefinition] = {
    UserPlan.FREE: PlanDefinition(
        plan=UserPlan.FREE,
        name="Free Plan",
        monthly=PlanPrice(inr=Decimal("0"), usd=Decimal("0")),
        yearly=PlanPrice(inr=Decimal("0"), usd=Decimal("0")),
        features=[
            "Up to 5 invoices per month",
            "Basic client management",
            "PDF export",
            "Email support",
        ],
    ),
    UserPlan.PRO: PlanDefinition(
        plan=UserPlan.PRO,
        name="Pro Plan",
        monthly=PlanPrice(inr=Decimal("299"), usd=Decimal("3.50")),
        yearly=PlanPrice(inr=Decimal("2499"), usd=Decimal("29")),
        features=[
            "Unlimited invoices",
            "Unlimited client profiles",
            "Email invoices to clients",
            "Enable/disable tax, discounts and hours",
            "Custom invoice numbers",
            "UPI, bank and crypto payment details",
            "Invoice notes, terms and delivery estimate",
            "Priority email support",
        ],
        trial_days=14,
        is_popular=True,
    ),
    UserPlan.AGENCY: PlanDefinition(
        plan=UserPlan.AGENCY,
        name="Agency Plan",
        monthly=PlanPrice(inr=Decimal("699"), usd=Decimal("8.17")),
        yearly=PlanPrice(inr=Decimal("5999"), usd=Decimal("70")),
        features=[
            "Everything in Pro Plan",
            "Team access (up to 5 users)",
            "Client portal",
            "Recurring invoices",
            "Branded email from your domain",
            "Proposal to invoice conversion",
            "Activity log with export",
            "Advanced analytics",
            "White-label branding",
            "API access",
        ],
    ),
}

PLAN_DURATIONS = {
    BillingCycle.MONTHLY: timedelta(days=30),
    BillingCycle.YEARLY: timedelta(days=365),
}

SUPPORTED_FIAT_CURRENCIES = [
    "USD", "EUR", "GBP", "JPY", "AUD", "CAD", "CHF", "CNY", "SEK", "NZD",
    "MXN", "SGD", "HKD", "NOK", "TRY", "RUB", "INR", "BRL", "ZAR", "KRW",
]

SUPPORTED_CRYPTO_CURRENCIES = [
    "BTC", "ETH", "USDT", "USDC", "BNB", "ADA", "DOT", "LINK", "LTC", "BCH",
    "XRP", "DOGE", "MATIC", "AVAX", "SOL", "TRX", "SHIB", "UNI", "ATOM", "FTM",
    "NEAR", "ALGO", "XLM", "VET", "ICP", "THETA", "FIL", "ETC", "XMR", "AAVE",
]

# Currencies plans are priced in
PRICED_CURRENCIES = ("USD", "INR")


def get_plan_price(plan: UserPlan, cycle: BillingCycle, currency: str = "USD") -> Decimal:
    """
    Price of a plan in USD or INR.

    Raises ValueError for other currencies.
    """
    currency = currency.upper()
    if currency not in PRICED_CURRENCIES:
        raise ValueError(f"Plans are not priced in {currency}")
    price = PLANS[plan].price_for(cycle)
    return price.inr if currency == "INR" else price.usd


def generate_order_id(plan: UserPlan, cycle: BillingCycle, user_id: uuid.UUID) -> str:
    """
    Generate a gateway order id.

    Format: {plan}-{cycle}-{user id prefix}-{epoch ms}, at most 50 chars.
    """
    timestamp = int(time.time() * 1000)
    return f"{plan.value}-{cycle.value}-{str(user_id)[:8]}-{timestamp}"[:50]


def verify_oxapay_signature(payload: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Verify an OxaPay callback signature.

    OxaPay signs the raw body with HMAC-SHA512 using the merchant API key
    and sends the hex digest in the HMAC header.
    """
    if not signature or not secret:
        return False

    expected = hmac.new(
        secret.encode('utf-8'),
        payload,
        hashlib.sha512
    ).hexdigest()

    return hmac.compare_digest(expected, signature)


# =============================================================================
# OXAPAY PROVIDER
# =============================================================================

class OxaPayProvider:
    """
    OxaPay crypto payment gateway.

    Only invoice creation is used; payment confirmation arrives through
    the callback. Without a merchant key the provider runs in stub mode
    and returns fake payment URLs.

    OxaPay API docs: https://docs.oxapay.com/
    """

    INVOICE_ENDPOINT = "/v1/payment/invoice"

    def __init__(
        self,
        merchant_api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        sandbox: Optional[bool] = None,
    ):
        self.merchant_api_key = merchant_api_key if merchant_api_key is not None else settings.oxapay_merchant_api_key
        self.base_url = (base_url or settings.oxapay_api_url).rstrip("/")
        self.sandbox = settings.oxapay_sandbox if sandbox is None else sandbox

        if not self.merchant_api_key:
            logger.warning("OxaPayProvider initialized without merchant key - using stub mode")
            self._is_stub = True
        else:
            self._is_stub = False
            logger.info(f"OxaPayProvider initialized (sandbox={self.sandbox})")

    @property
    def is_stub(self) -> bool:
        return self._is_stub

    def _get_headers(self) -> Dict[str, str]:
        return {
            "merchant_api_key": self.merchant_api_key,
            "Content-Type": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make an HTTP request to the OxaPay API.

        Transport failures are returned as a response-shaped dict with a
        non-200 status so callers handle one shape.
        """
        url = f"{self.base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                )

                result = response.json()
                logger.debug(f"OxaPay {method} {endpoint}: http={response.status_code} status={result.get('status')}")
                return result

        except httpx.TimeoutException:
            logger.error(f"OxaPay API timeout: {method} {endpoint}")
            return {
                "status": 0,
                "message": "Request timed out. Please try again.",
            }
        except httpx.RequestError as e:
            logger.error(f"OxaPay API request error: {e}")
            return {
                "status": 0,
                "message": "Network error: Unable to connect to OxaPay servers.",
            }
        except ValueError as e:
            logger.error(f"OxaPay API returned invalid JSON: {e}")
            return {
                "status": 0,
                "message": "Invalid response from OxaPay.",
            }

    @staticmethod
    def _error_message(result: Dict[str, Any]) -> str:
        """Turn an OxaPay error response into a readable message."""
        message = "Payment creation failed"
        error = result.get("error")
        if isinstance(error, dict) and error.get("message"):
            message = error["message"]
        elif result.get("message"):
            message = result["message"]

        if "Invalid API key" in message or "Unauthorized" in message:
            return "Invalid merchant API key. Please verify your OxaPay credentials."
        if "Invalid amount" in message:
            return "Invalid payment amount. Please check the amount and try again."
        if "Invalid currency" in message:
            return "Invalid currency. Please use a supported currency."
        return message

    async def create_invoice(
        self,
        amount: Decimal,
        currency: str,
        order_id: str,
        description: str,
        email: Optional[str] = None,
        callback_url: Optional[str] = None,
        return_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a hosted payment invoice.

        API: POST https://api.oxapay.com/v1/payment/invoice

        Returns:
            Dict with success, and payment_url/track_id or error
        """
        if amount is None or Decimal(amount) <= 0:
            return {"success": False, "error": "Invalid payment amount"}

        if self._is_stub:
            logger.warning("OxaPayProvider in STUB mode - returning fake data")
            return {
                "success": True,
                "payment_url": f"https://pay.oxapay.com/stub/{order_id}",
                "track_id": f"stub_{order_id}",
            }

        payload = {
            "amount": float(amount),
            "currency": currency.upper(),
            "lifetime": settings.oxapay_invoice_lifetime,
            "fee_paid_by_payer": settings.oxapay_fee_paid_by_payer,
            "under_paid_coverage": settings.oxapay_under_paid_coverage,
            "callback_url": callback_url or "",
            "return_url": return_url or "",
            "description": description,
            "order_id": order_id,
            "email": email or "",
            "sandbox": self.sandbox,
        }

        result = await self._make_request("POST", self.INVOICE_ENDPOINT, payload)

        data = result.get("data") or {}
        if result.get("status") == 200 and data.get("payment_url"):
            logger.info(f"OxaPay invoice created for order {order_id}: track_id={data.get('track_id')}")
            return {
                "success": True,
                "payment_url": data["payment_url"],
                "track_id": data.get("track_id"),
            }

        error = self._error_message(result)
        logger.error(f"OxaPay invoice creation failed for order {order_id}: {error}")
        return {"success": False, "error": error}


# =============================================================================
# BILLING SERVICE
# =============================================================================

class BillingService:
    """
    Service for plan purchases.

    Usage:
        service = BillingService(db)
        purchase = await service.purchase_plan(user, UserPlan.PRO, BillingCycle.MONTHLY)
        # later, from the gateway callback
        await service.process_callback(payload)
    """

    def __init__(
        self,
        db: AsyncSession,
        provider: Optional[OxaPayProvider] = None,
    ):
        self.db = db
        self.provider = provider or OxaPayProvider()

    @staticmethod
    def get_plans() -> List[Dict[str, Any]]:
        return [plan.to_dict() for plan in PLANS.values()]

    async def get_purchase_by_order_id(self, order_id: str) -> Optional[PlanPurchase]:
        result = await self.db.execute(
            select(PlanPurchase).where(PlanPurchase.order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def get_purchase_by_track_id(self, track_id: str) -> Optional[PlanPurchase]:
        result = await self.db.execute(
            select(PlanPurchase).where(PlanPurchase.track_id == track_id)
        )
        return result.scalar_one_or_none()

    async def get_purchases_for_user(self, user_id: uuid.UUID) -> List[PlanPurchase]:
        result = await self.db.execute(
            select(PlanPurchase)
            .where(PlanPurchase.user_id == user_id)
            .order_by(PlanPurchase.created_at.desc())
        )
        return list(result.scalars().all())

    async def purchase_plan(
        self,
        user: User,
        plan: UserPlan,
        cycle: BillingCycle = BillingCycle.MONTHLY,
        currency: str = "USD",
    ) -> Optional[PlanPurchase]:
        """
        Start a plan purchase.

        The free plan is activated immediately and None is returned.
        Paid plans return a pending purchase carrying the payment URL.

        Raises:
            ValueError: unsupported currency
            PaymentGatewayException: OxaPay refused to create the invoice
        """
        if plan == UserPlan.FREE:
            user.plan = UserPlan.FREE
            user.plan_expires_at = None
            await self.db.commit()
            logger.info(f"User {user.id} switched to free plan")
            return None

        amount = get_plan_price(plan, cycle, currency)
        order_id = generate_order_id(plan, cycle, user.id)

        purchase = PlanPurchase(
            user_id=user.id,
            plan=plan,
            billing_cycle=cycle,
            amount=amount,
            currency=currency.upper(),
            order_id=order_id,
            status=PurchaseStatus.PENDING,
            gateway_payload={},
        )
        self.db.add(purchase)
        await self.db.flush()

        result = await self.provider.create_invoice(
            amount=amount,
            currency=currency,
            order_id=order_id,
            description=f"{PLANS[plan].name} - {cycle.value} subscription",
            email=user.email,
            callback_url=f"{settings.base_url}/api/v1/billing/callback",
            return_url=f"{settings.frontend_url}/payment/success?plan={plan.value}&billing={cycle.value}&order_id={order_id}",
        )

        if not result.get("success"):
            purchase.status = PurchaseStatus.FAILED
            purchase.gateway_payload = {"error": result.get("error")}
            await self.db.commit()
            raise PaymentGatewayException(result.get("error") or "Payment creation failed")

        purchase.payment_url = result["payment_url"]
        purchase.track_id = result.get("track_id")
        await self.db.commit()
        await self.db.refresh(purchase)

        logger.info(f"Opened {plan.value}/{cycle.value} purchase {order_id} for user {user.id}")
        return purchase

    async def activate_plan(self, user: User, plan: UserPlan, cycle: BillingCycle) -> User:
        """Put a paid plan in force from now for one billing cycle."""
        user.plan = plan
        user.plan_expires_at = datetime.now(timezone.utc) + PLAN_DURATIONS[cycle]
        return user

    async def process_callback(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle a verified OxaPay callback.

        Paid callbacks mark the purchase paid and activate the plan.
        Repeated callbacks for an already paid purchase change nothing.
        """
        order_id = payload.get("order_id")
        track_id = payload.get("track_id")
        status = str(payload.get("status", "")).lower()

        purchase = None
        if order_id:
            purchase = await self.get_purchase_by_order_id(str(order_id))
        if purchase is None and track_id:
            purchase = await self.get_purchase_by_track_id(str(track_id))

        if purchase is None:
            logger.warning(f"OxaPay callback for unknown order {order_id} / track {track_id}")
            return {"handled": False, "error": "Unknown order"}

        if purchase.status == PurchaseStatus.PAID:
            logger.info(f"OxaPay callback for already paid order {purchase.order_id}")
            return {"handled": True, "order_id": purchase.order_id, "already_processed": True}

        purchase.gateway_payload = payload
        if track_id and not purchase.track_id:
            purchase.track_id = str(track_id)

        if status == "paid":
            purchase.status = PurchaseStatus.PAID
            purchase.paid_at = datetime.now(timezone.utc)

            user = await self.db.get(User, purchase.user_id)
            if user is not None:
                await self.activate_plan(user, purchase.plan, purchase.billing_cycle)
                logger.info(
                    f"Activated {purchase.plan.value} for user {user.id} until {user.plan_expires_at}"
                )
        elif status == "expired":
            purchase.status = PurchaseStatus.EXPIRED
        elif status in ("failed", "refunded"):
            purchase.status = PurchaseStatus.FAILED

        await self.db.commit()

        return {
            "handled": True,
            "order_id": purchase.order_id,
            "status": purchase.status.value,
        }

    async def confirm_return(self, user: User, order_id: str) -> Optional[PlanPurchase]:
        """
        Look up a purchase when the user comes back from the payment page.

        Read-only: the plan only changes through the signed callback.
        """
        purchase = await self.get_purchase_by_order_id(order_id)
        if purchase is None or purchase.user_id != user.id:
            return None
        return purchase
