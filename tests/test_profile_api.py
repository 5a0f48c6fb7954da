"""
InvoiceFlow - Profile & Company API Tests
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import EmailLog, EmailType
from app.models.user import User
from app.utils.security import create_access_token


def identity_headers(user_id=None, email: str = "newcomer@studio.com") -> dict:
    token = create_access_token(data={"sub": str(user_id or uuid4()), "email": email})
    return {"Authorization": f"Bearer {token}"}


class TestProfile:
    """Test profile creation and updates."""

    @pytest.mark.asyncio
    async def test_missing_profile_is_unauthorized(self, client: AsyncClient, db_session: AsyncSession):
        response = await client.get("/api/v1/profile", headers=identity_headers())

        assert response.status_code == 401
        assert response.json()["detail"]["message"].startswith("Profile not found")

    @pytest.mark.asyncio
    async def test_first_call_creates_profile(self, client: AsyncClient, db_session: AsyncSession):
        user_id = uuid4()
        headers = identity_headers(user_id)

        response = await client.put("/api/v1/profile", json={"name": "New Person"}, headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(user_id)
        assert data["email"] == "newcomer@studio.com"
        assert data["plan"] == "free"
        assert data["default_currency"] == "USD"

        welcome = (await db_session.execute(select(EmailLog))).scalars().one()
        assert welcome.email_type == EmailType.WELCOME

        profile = await client.get("/api/v1/profile", headers=headers)
        assert profile.status_code == 200

    @pytest.mark.asyncio
    async def test_creation_needs_name(self, client: AsyncClient, db_session: AsyncSession):
        response = await client.put("/api/v1/profile", json={"phone": "123"}, headers=identity_headers())

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Email and name are required to create a profile"

    @pytest.mark.asyncio
    async def test_email_already_taken(self, client: AsyncClient, test_user: User):
        response = await client.put(
            "/api/v1/profile",
            json={"name": "Imposter"},
            headers=identity_headers(email=test_user.email),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_defaults(self, client: AsyncClient, auth_headers: dict):
        response = await client.put(
            "/api/v1/profile",
            json={"default_currency": "inr", "default_tax_rate": "18"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["default_currency"] == "INR"
        assert response.json()["default_tax_rate"] == 18.0

        profile = await client.get("/api/v1/profile", headers=auth_headers)
        assert profile.json()["name"] == "Test User"

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, test_user: User):
        token = create_access_token(data={"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-5))

        response = await client.get("/api/v1/profile", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_subscription_for_paid_plan(self, client: AsyncClient, pro_headers: dict):
        response = await client.get("/api/v1/profile/subscription", headers=pro_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["effective_plan"] == "pro"
        assert data["monthly_invoice_limit"] is None


class TestCompany:
    """Test company info."""

    @pytest.mark.asyncio
    async def test_not_set_up(self, client: AsyncClient, pro_headers: dict):
        response = await client.get("/api/v1/company", headers=pro_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_create_requires_business_name(self, client: AsyncClient, pro_headers: dict):
        response = await client.put("/api/v1/company", json={"phone": "123"}, headers=pro_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Business name is required"

    @pytest.mark.asyncio
    async def test_create_and_update(self, client: AsyncClient, pro_headers: dict):
        created = await client.put(
            "/api/v1/company",
            json={"business_name": "Acme Studio", "city": "Pune", "country": "India"},
            headers=pro_headers,
        )
        assert created.status_code == 200
        assert created.json()["address_lines"] == ["Pune", "India"]

        updated = await client.put(
            "/api/v1/company",
            json={"website": "https://acmestudio.com", "custom_email_domain": " AcmeStudio.com "},
            headers=pro_headers,
        )

        data = updated.json()
        assert data["business_name"] == "Acme Studio"
        assert data["website"] == "https://acmestudio.com"
        assert data["custom_email_domain"] == "acmestudio.com"
        assert data["id"] == created.json()["id"]

    @pytest.mark.asyncio
    async def test_rejects_email_as_domain(self, client: AsyncClient, pro_headers: dict):
        response = await client.put(
            "/api/v1/company",
            json={"business_name": "Acme", "custom_email_domain": "me@acme.com"},
            headers=pro_headers,
        )

        assert response.status_code == 422
