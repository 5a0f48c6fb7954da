"""
InvoiceFlow - Support API Tests

Support tickets and feedback, signed in or anonymous.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.support import SupportTicket
from app.models.user import User


class TestTickets:
    """Test support ticket submission."""

    @pytest.mark.asyncio
    async def test_anonymous_ticket(self, client: AsyncClient, db_session: AsyncSession):
        response = await client.post(
            "/api/v1/support/tickets",
            json={
                "name": "Visitor",
                "email": "visitor@somewhere.com",
                "subject": "Pricing question",
                "message": "Do you offer annual billing?",
                "category": "billing",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "open"
        assert data["priority"] == "medium"

        ticket = (await db_session.execute(select(SupportTicket))).scalars().one()
        assert ticket.user_id is None

    @pytest.mark.asyncio
    async def test_anonymous_ticket_needs_contact(self, client: AsyncClient, db_session: AsyncSession):
        response = await client.post(
            "/api/v1/support/tickets",
            json={"subject": "Help", "message": "Something broke"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Name and email are required"

    @pytest.mark.asyncio
    async def test_signed_in_ticket_uses_profile(
        self,
        client: AsyncClient,
        test_user: User,
        auth_headers: dict,
    ):
        response = await client.post(
            "/api/v1/support/tickets",
            json={"subject": "PDF looks off", "message": "Logo is cropped", "category": "technical"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["email"] == test_user.email
        assert response.json()["name"] == test_user.name

        mine = await client.get("/api/v1/support/tickets", headers=auth_headers)
        assert [t["subject"] for t in mine.json()] == ["PDF looks off"]

    @pytest.mark.asyncio
    async def test_admin_responds(
        self,
        client: AsyncClient,
        auth_headers: dict,
        admin_headers: dict,
    ):
        created = await client.post(
            "/api/v1/support/tickets",
            json={"subject": "Refund", "message": "Charged twice"},
            headers=auth_headers,
        )

        response = await client.put(
            f"/api/v1/admin/tickets/{created.json()['id']}",
            json={"status": "resolved", "admin_response": "Refunded the duplicate charge"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "resolved"

        mine = await client.get("/api/v1/support/tickets", headers=auth_headers)
        assert mine.json()[0]["admin_response"] == "Refunded the duplicate charge"


class TestFeedback:
    """Test feedback submission."""

    @pytest.mark.asyncio
    async def test_feedback_with_rating(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/support/feedback",
            json={"type": "feature", "rating": 5, "message": "Please add Stripe"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["status"] == "new"
        assert response.json()["rating"] == 5

    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/v1/support/feedback",
            json={"rating": 9, "message": "Great"},
            headers=auth_headers,
        )

        assert response.status_code == 422
