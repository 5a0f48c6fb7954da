"""
InvoiceFlow - Client Service

Business logic for saved client records.
"""

import uuid
from typing import List, Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.client import Client
from app.models.invoice import Invoice, InvoiceStatus


class ClientService:
    """Service for client operations. Every query is scoped to the owner."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_clients_for_user(
        self,
        user_id: uuid.UUID,
        search: Optional[str] = None,
    ) -> List[Client]:
        """Get all clients for a user, newest first."""
        query = select(Client).where(Client.user_id == user_id)

        if search:
            search_term = f"%{search}%"
            query = query.where(
                (Client.name.ilike(search_term)) |
                (Client.email.ilike(search_term)) |
                (Client.business_name.ilike(search_term))
            )

        query = query.order_by(Client.created_at.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_client_by_id(
        self,
        client_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[Client]:
        """Get client by ID."""
        result = await self.db.execute(
            select(Client)
            .where(Client.id == client_id)
            .where(Client.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_client(
        self,
        user_id: uuid.UUID,
        name: str,
        email: str,
        business_name: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Client:
        """Create a new client."""
        client = Client(
            user_id=user_id,
            name=name,
            email=email,
            business_name=business_name,
            phone=phone,
            address=address,
        )

        self.db.add(client)
        await self.db.commit()
        await self.db.refresh(client)

        return client

    async def update_client(
        self,
        client: Client,
        **kwargs,
    ) -> Client:
        """Update a client."""
        for key, value in kwargs.items():
            if value is not None and hasattr(client, key):
                setattr(client, key, value)

        await self.db.commit()
        await self.db.refresh(client)

        return client

    async def delete_client(self, client: Client) -> bool:
        """
        Delete a client.

        Invoices keep their copied client details; only the link is cleared.
        """
        await self.db.delete(client)
        await self.db.commit()
        return True

    async def get_client_stats(self, client: Client) -> dict:
        """Invoice count and amounts billed to this client's email."""
        result = await self.db.execute(
            select(
                func.count(Invoice.id).label("count"),
                func.coalesce(func.sum(Invoice.total), 0).label("total_invoiced"),
                func.coalesce(
                    func.sum(case((Invoice.status == InvoiceStatus.PAID, Invoice.total), else_=0)),
                    0,
                ).label("total_paid"),
            )
            .where(Invoice.user_id == client.user_id)
            .where(Invoice.client_email == client.email)
        )

        row = result.one()

        total_invoiced = float(row.total_invoiced)
        total_paid = float(row.total_paid)

        return {
            "invoice_count": row.count,
            "total_invoiced": total_invoiced,
            "total_paid": total_paid,
            "outstanding_balance": total_invoiced - total_paid,
        }
