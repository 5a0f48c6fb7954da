"""
InvoiceFlow - Billing Tests

Plan pricing, OxaPay provider behaviour, signed callbacks and plan
activation. OxaPay is mocked with respx; no real API calls are made.
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import httpx
import pytest
import respx
from httpx import AsyncClient

from app.config import settings
from app.models.billing import BillingCycle, PurchaseStatus
from app.models.user import User, UserPlan
from app.services.billing_service import (
    BillingService,
    OxaPayProvider,
    PLANS,
    generate_order_id,
    get_plan_price,
    verify_oxapay_signature,
)
from app.utils.error_handling import PaymentGatewayException
from fixtures.oxapay_mock import MockOxaPayServer


MERCHANT_KEY = "oxapay_test_merchant_key"


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def oxapay_server():
    return MockOxaPayServer(merchant_api_key=MERCHANT_KEY)


@pytest.fixture
def oxapay_provider():
    """Provider with test credentials (requests are intercepted by respx)."""
    return OxaPayProvider(
        merchant_api_key=MERCHANT_KEY,
        base_url="https://api.oxapay.com",
        sandbox=True,
    )


@pytest.fixture
def stub_provider():
    return OxaPayProvider(merchant_api_key="", base_url="https://api.oxapay.com")


@pytest.fixture
def merchant_key(monkeypatch):
    monkeypatch.setattr(settings, "oxapay_merchant_api_key", MERCHANT_KEY)
    return MERCHANT_KEY


# =============================================================================
# PLAN CATALOGUE
# =============================================================================

class TestPlanPricing:
    """Test plan prices and order ids."""

    def test_catalogue_has_three_plans(self):
        plans = BillingService.get_plans()
        assert [p["id"] for p in plans] == ["free", "pro", "agency"]
        assert all(p["price_monthly_usd"] == 0 for p in plans if p["id"] == "free")

    def test_pro_prices(self):
        assert get_plan_price(UserPlan.PRO, BillingCycle.MONTHLY, "USD") == Decimal("3.50")
        assert get_plan_price(UserPlan.PRO, BillingCycle.MONTHLY, "INR") == Decimal("299")
        assert get_plan_price(UserPlan.PRO, BillingCycle.YEARLY, "usd") == Decimal("29")

    def test_agency_prices(self):
        assert get_plan_price(UserPlan.AGENCY, BillingCycle.MONTHLY, "USD") == Decimal("8.17")
        assert get_plan_price(UserPlan.AGENCY, BillingCycle.YEARLY, "INR") == Decimal("5999")

    def test_unpriced_currency_rejected(self):
        with pytest.raises(ValueError):
            get_plan_price(UserPlan.PRO, BillingCycle.MONTHLY, "EUR")

    def test_pro_is_marked_popular(self):
        assert PLANS[UserPlan.PRO].is_popular is True
        assert PLANS[UserPlan.PRO].trial_days == 14

    def test_order_id_format(self):
        user_id = uuid4()
        order_id = generate_order_id(UserPlan.AGENCY, BillingCycle.YEARLY, user_id)

        parts = order_id.split("-")
        assert parts[0] == "agency"
        assert parts[1] == "yearly"
        assert parts[2] == str(user_id)[:8]
        assert parts[3].isdigit()
        assert len(order_id) <= 50


# =============================================================================
# CALLBACK SIGNATURE VERIFICATION
# =============================================================================

class TestCallbackSignature:
    """Test HMAC-SHA512 callback signature verification."""

    PAYLOAD = b'{"status": "Paid", "order_id": "pro-monthly-abcd1234-1"}'

    def _sign(self, payload: bytes, secret: str = MERCHANT_KEY) -> str:
        return hmac.new(secret.encode('utf-8'), payload, hashlib.sha512).hexdigest()

    def test_valid_signature(self):
        assert verify_oxapay_signature(self.PAYLOAD, self._sign(self.PAYLOAD), MERCHANT_KEY) is True

    def test_wrong_key(self):
        signature = self._sign(self.PAYLOAD, "another_key")
        assert verify_oxapay_signature(self.PAYLOAD, signature, MERCHANT_KEY) is False

    def test_missing_signature_or_secret(self):
        assert verify_oxapay_signature(self.PAYLOAD, "", MERCHANT_KEY) is False
        assert verify_oxapay_signature(self.PAYLOAD, None, MERCHANT_KEY) is False
        assert verify_oxapay_signature(self.PAYLOAD, self._sign(self.PAYLOAD), "") is False

    def test_tampered_payload(self):
        signature = self._sign(self.PAYLOAD)
        tampered = self.PAYLOAD.replace(b"pro", b"agency")
        assert verify_oxapay_signature(tampered, signature, MERCHANT_KEY) is False


# =============================================================================
# OXAPAY PROVIDER
# =============================================================================

class TestOxaPayProvider:
    """Test invoice creation against the mocked merchant API."""

    @pytest.mark.asyncio
    async def test_stub_mode_without_key(self, stub_provider):
        assert stub_provider.is_stub is True

        result = await stub_provider.create_invoice(
            amount=Decimal("3.50"),
            currency="USD",
            order_id="pro-monthly-abcd1234-1",
            description="Pro Plan",
        )

        assert result["success"] is True
        assert "stub" in result["payment_url"]
        assert result["track_id"] == "stub_pro-monthly-abcd1234-1"

    @pytest.mark.asyncio
    async def test_rejects_non_positive_amount(self, oxapay_provider):
        result = await oxapay_provider.create_invoice(
            amount=Decimal("0"),
            currency="USD",
            order_id="x",
            description="nothing",
        )
        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_create_invoice_success(self, oxapay_provider, oxapay_server):
        with oxapay_server.activate():
            result = await oxapay_provider.create_invoice(
                amount=Decimal("8.17"),
                currency="usd",
                order_id="agency-monthly-abcd1234-1",
                description="Agency Plan - monthly subscription",
                email="owner@example.com",
                callback_url="https://api.example.com/api/v1/billing/callback",
            )

        assert result["success"] is True
        assert result["payment_url"].startswith("https://pay.oxapay.com/")
        assert result["track_id"]

        sent = oxapay_server.requests[0]
        assert sent["headers"]["merchant_api_key"] == MERCHANT_KEY
        assert sent["body"]["amount"] == 8.17
        assert sent["body"]["currency"] == "USD"
        assert sent["body"]["order_id"] == "agency-monthly-abcd1234-1"
        assert sent["body"]["sandbox"] is True

    @pytest.mark.asyncio
    async def test_gateway_error_is_mapped(self, oxapay_provider, oxapay_server):
        oxapay_server.set_error("Invalid amount")

        with oxapay_server.activate():
            result = await oxapay_provider.create_invoice(
                amount=Decimal("3.50"),
                currency="USD",
                order_id="pro-monthly-abcd1234-2",
                description="Pro Plan",
            )

        assert result["success"] is False
        assert result["error"].startswith("Invalid payment amount")

    @pytest.mark.asyncio
    async def test_invalid_key_is_mapped(self, oxapay_server):
        provider = OxaPayProvider(merchant_api_key="wrong", base_url="https://api.oxapay.com")

        with oxapay_server.activate():
            result = await provider.create_invoice(
                amount=Decimal("3.50"),
                currency="USD",
                order_id="pro-monthly-abcd1234-3",
                description="Pro Plan",
            )

        assert result["success"] is False
        assert "merchant API key" in result["error"]

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, oxapay_provider):
        with respx.mock(base_url="https://api.oxapay.com") as router:
            router.post("/v1/payment/invoice").mock(side_effect=httpx.ReadTimeout("timed out"))
            result = await oxapay_provider.create_invoice(
                amount=Decimal("3.50"),
                currency="USD",
                order_id="pro-monthly-abcd1234-4",
                description="Pro Plan",
            )

        assert result["success"] is False
        assert "timed out" in result["error"]


# =============================================================================
# PURCHASE AND CALLBACK FLOW
# =============================================================================

class TestPurchaseFlow:
    """Test purchases and plan activation through the service."""

    @pytest.mark.asyncio
    async def test_paid_callback_activates_plan(self, db_session, test_user: User, oxapay_provider, oxapay_server):
        service = BillingService(db_session, provider=oxapay_provider)

        with oxapay_server.activate():
            purchase = await service.purchase_plan(test_user, UserPlan.PRO, BillingCycle.MONTHLY, "USD")

        assert purchase.status == PurchaseStatus.PENDING
        assert purchase.amount == Decimal("3.50")
        assert purchase.payment_url
        assert test_user.plan == UserPlan.FREE

        body = oxapay_server.callback_body(order_id=purchase.order_id, status="Paid")
        result = await service.process_callback(json.loads(body))

        assert result["handled"] is True
        assert result["status"] == PurchaseStatus.PAID.value

        await db_session.refresh(test_user)
        assert test_user.plan == UserPlan.PRO
        assert test_user.plan_expires_at > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_repeated_callback_is_idempotent(self, db_session, test_user: User, oxapay_provider, oxapay_server):
        service = BillingService(db_session, provider=oxapay_provider)

        with oxapay_server.activate():
            purchase = await service.purchase_plan(test_user, UserPlan.AGENCY, BillingCycle.YEARLY, "INR")

        payload = json.loads(oxapay_server.callback_body(order_id=purchase.order_id))
        await service.process_callback(payload)
        await db_session.refresh(test_user)
        first_expiry = test_user.plan_expires_at

        again = await service.process_callback(payload)

        assert again["already_processed"] is True
        await db_session.refresh(test_user)
        assert test_user.plan_expires_at == first_expiry

    @pytest.mark.asyncio
    async def test_expired_callback_leaves_plan(self, db_session, test_user: User, oxapay_provider, oxapay_server):
        service = BillingService(db_session, provider=oxapay_provider)

        with oxapay_server.activate():
            purchase = await service.purchase_plan(test_user, UserPlan.PRO)

        payload = json.loads(oxapay_server.callback_body(order_id=purchase.order_id, status="Expired"))
        result = await service.process_callback(payload)

        assert result["status"] == PurchaseStatus.EXPIRED.value
        await db_session.refresh(test_user)
        assert test_user.plan == UserPlan.FREE

    @pytest.mark.asyncio
    async def test_unknown_order(self, db_session, oxapay_provider):
        result = await BillingService(db_session, provider=oxapay_provider).process_callback(
            {"order_id": "nope", "status": "Paid"}
        )
        assert result["handled"] is False

    @pytest.mark.asyncio
    async def test_gateway_failure_marks_purchase_failed(self, db_session, test_user: User, oxapay_provider, oxapay_server):
        service = BillingService(db_session, provider=oxapay_provider)
        oxapay_server.set_error("Invalid currency")

        with oxapay_server.activate():
            with pytest.raises(PaymentGatewayException):
                await service.purchase_plan(test_user, UserPlan.PRO)

        purchases = await service.get_purchases_for_user(test_user.id)
        assert len(purchases) == 1
        assert purchases[0].status == PurchaseStatus.FAILED

    @pytest.mark.asyncio
    async def test_free_plan_switches_immediately(self, db_session, pro_user: User, oxapay_provider):
        result = await BillingService(db_session, provider=oxapay_provider).purchase_plan(pro_user, UserPlan.FREE)

        assert result is None
        assert pro_user.plan == UserPlan.FREE
        assert pro_user.plan_expires_at is None


# =============================================================================
# API
# =============================================================================

class TestBillingAPI:
    """Test billing endpoints."""

    @pytest.mark.asyncio
    async def test_list_plans_is_public(self, client: AsyncClient):
        response = await client.get("/api/v1/billing/plans")

        assert response.status_code == 200
        data = response.json()
        assert len(data["plans"]) == 3
        assert "BTC" in data["supported_crypto_currencies"]

    @pytest.mark.asyncio
    async def test_callback_rejects_bad_signature(self, client: AsyncClient, merchant_key):
        body = json.dumps({"order_id": "x", "status": "Paid"}).encode()

        response = await client.post(
            "/api/v1/billing/callback",
            content=body,
            headers={"HMAC": "0" * 128, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Invalid callback signature"

    @pytest.mark.asyncio
    async def test_purchase_then_signed_callback(
        self,
        client: AsyncClient,
        test_user: User,
        auth_headers: dict,
        merchant_key,
        oxapay_server,
    ):
        with oxapay_server.activate():
            response = await client.post(
                "/api/v1/billing/purchase",
                json={"plan": "agency", "billing_cycle": "monthly", "currency": "USD"},
                headers=auth_headers,
            )

        assert response.status_code == 200
        started = response.json()
        order_id = started["purchase"]["order_id"]
        assert started["payment_url"].startswith("https://pay.oxapay.com/")

        # The return page does not activate anything
        response = await client.get(f"/api/v1/billing/return/{order_id}", headers=auth_headers)
        assert response.json()["status"] == "pending"

        body = oxapay_server.callback_body(order_id=order_id, status="Paid", amount=8.17)
        response = await client.post(
            "/api/v1/billing/callback",
            content=body,
            headers={"HMAC": oxapay_server.sign(body), "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.text == "ok"

        response = await client.get("/api/v1/profile/subscription", headers=auth_headers)
        assert response.json()["effective_plan"] == "agency"

    @pytest.mark.asyncio
    async def test_unsupported_currency(self, client: AsyncClient, test_user: User, auth_headers: dict):
        response = await client.post(
            "/api/v1/billing/purchase",
            json={"plan": "pro", "currency": "EUR"},
            headers=auth_headers,
        )

        assert response.status_code == 400
