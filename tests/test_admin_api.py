"""
InvoiceFlow - Admin API Tests

Platform administration endpoints and the admin activity log.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import AdminActivityLog
from app.models.invoice import Invoice
from app.models.user import User


class TestAdminAccess:
    """Only configured admin emails reach the admin API."""

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client: AsyncClient, pro_headers: dict):
        response = await client.get("/api/v1/admin/stats", headers=pro_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_anonymous_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/v1/admin/stats")

        assert response.status_code == 401


class TestAdminStats:
    """Test the platform overview."""

    @pytest.mark.asyncio
    async def test_overview(
        self,
        client: AsyncClient,
        admin_headers: dict,
        pro_user: User,
        agency_user: User,
        test_invoice: Invoice,
    ):
        response = await client.get("/api/v1/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 3
        assert data["active_users"] == 3
        assert data["total_invoices"] == 1
        assert data["total_revenue"] == 0.0
        assert data["users_by_plan"] == {"free": 1, "pro": 1, "agency": 1}

    @pytest.mark.asyncio
    async def test_list_invoices_across_tenants(
        self,
        client: AsyncClient,
        admin_headers: dict,
        test_invoice: Invoice,
    ):
        response = await client.get("/api/v1/admin/invoices", headers=admin_headers)

        assert response.status_code == 200
        rows = response.json()
        assert len(rows) == 1
        assert rows[0]["owner_email"] == "pro@example.com"
        assert rows[0]["invoice"]["invoice_number"] == "INV-0001"


# ===========================================
# USER MANAGEMENT
# ===========================================

class TestUserManagement:
    """Test bans and plan changes."""

    @pytest.mark.asyncio
    async def test_cannot_ban_self(self, client: AsyncClient, admin_user: User, admin_headers: dict):
        response = await client.post(f"/api/v1/admin/users/{admin_user.id}/ban", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "You cannot ban yourself"

    @pytest.mark.asyncio
    async def test_ban_blocks_access(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
        pro_user: User,
        pro_headers: dict,
    ):
        response = await client.post(f"/api/v1/admin/users/{pro_user.id}/ban", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["is_banned"] is True

        blocked = await client.get("/api/v1/invoices", headers=pro_headers)
        assert blocked.status_code == 403
        assert blocked.json()["detail"]["message"] == "Your account has been suspended"

        log = (await db_session.execute(select(AdminActivityLog))).scalars().one()
        assert log.action == "ban_user"
        assert log.target_id == str(pro_user.id)

    @pytest.mark.asyncio
    async def test_ban_toggles_back(self, client: AsyncClient, admin_headers: dict, pro_user: User):
        await client.post(f"/api/v1/admin/users/{pro_user.id}/ban", headers=admin_headers)
        response = await client.post(f"/api/v1/admin/users/{pro_user.id}/ban", headers=admin_headers)

        assert response.json()["is_banned"] is False

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(f"/api/v1/admin/users/{uuid4()}/ban", headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_change_plan(self, client: AsyncClient, admin_headers: dict, test_user: User):
        response = await client.put(
            f"/api/v1/admin/users/{test_user.id}/plan",
            json={"plan": "agency"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["plan"] == "agency"
        assert data["plan_expires_at"] is not None

    @pytest.mark.asyncio
    async def test_downgrade_to_free_clears_expiry(
        self,
        client: AsyncClient,
        admin_headers: dict,
        pro_user: User,
    ):
        response = await client.put(
            f"/api/v1/admin/users/{pro_user.id}/plan",
            json={"plan": "free"},
            headers=admin_headers,
        )

        assert response.json()["plan"] == "free"
        assert response.json()["plan_expires_at"] is None

    @pytest.mark.asyncio
    async def test_search_users(self, client: AsyncClient, admin_headers: dict, pro_user: User, agency_user: User):
        response = await client.get("/api/v1/admin/users", params={"search": "agency"}, headers=admin_headers)

        assert response.json()["total"] == 1
        assert response.json()["users"][0]["email"] == "agency@example.com"


# ===========================================
# EXPORT
# ===========================================

class TestExport:
    """Test CSV exports."""

    @pytest.mark.asyncio
    async def test_export_invoices(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        admin_headers: dict,
        test_invoice: Invoice,
    ):
        response = await client.get("/api/v1/admin/export/invoices", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment; filename=invoices_" in response.headers["content-disposition"]

        lines = response.text.strip().split("\n")
        assert lines[0].startswith("id,invoice_number,user_id")
        assert '"INV-0001"' in lines[1]
        assert '"137.50"' in lines[1]
        assert '"sent"' in lines[1]

        log = (await db_session.execute(
            select(AdminActivityLog).where(AdminActivityLog.action == "export_data")
        )).scalars().one()
        assert log.target_type == "invoices"

    @pytest.mark.asyncio
    async def test_unknown_dataset(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/admin/export/secrets", headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_dataset(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/admin/export/tickets", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "No data to export"
