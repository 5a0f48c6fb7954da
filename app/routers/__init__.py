"""
InvoiceFlow - Routers Package

FastAPI route handlers.

Routers:
- profile: Profile, subscription and company info
- clients: Saved clients
- invoices: Invoice management, PDF and email delivery
- payment_methods: Payment instructions printed on invoices
- dashboard: Counters and revenue analytics
- billing: Plan catalogue, purchases and the OxaPay callback
- proposals: Proposals and conversion to invoices (agency)
- agency: Team, client portal, white label, branded email,
  recurring invoices and API keys (agency)
- portal: Public client portal
- support: Support tickets and feedback
- admin: Platform administration
"""

from app.routers import (
    profile,
    clients,
    invoices,
    payment_methods,
    dashboard,
    billing,
    proposals,
    agency,
    portal,
    support,
    admin,
)

__all__ = [
    "profile",
    "clients",
    "invoices",
    "payment_methods",
    "dashboard",
    "billing",
    "proposals",
    "agency",
    "portal",
    "support",
    "admin",
]
