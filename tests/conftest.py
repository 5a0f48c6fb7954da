"""
InvoiceFlow - Test Configuration

Pytest fixtures and configuration.

Database fixtures run against a separate `<db>_test` PostgreSQL database
and skip the test when it cannot be reached.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.database import Base, get_async_session
from app.config import settings
import app.models  # noqa: F401
from app.models.user import User, UserPlan
from app.models.client import Client
from app.models.company import CompanyInfo
from app.models.invoice import Invoice, InvoiceItem, InvoiceStatus, DiscountType
from app.utils.security import create_access_token
from main import app


# Test database URL (use separate test database)
TEST_DATABASE_URL = settings.database_url_async.replace(
    settings.postgres_db,
    f"{settings.postgres_db}_test"
)

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
)

# Create test session factory
TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    try:
        async with test_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError) as e:
        await test_engine.dispose()
        pytest.skip(f"Test database unavailable: {e}")

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

async def _create_user(db: AsyncSession, email: str, plan: UserPlan, **fields) -> User:
    user = User(
        id=uuid4(),
        email=email,
        name=fields.pop("name", "Test User"),
        default_currency="USD",
        default_tax_rate=Decimal("0.00"),
        default_discount=Decimal("0.00"),
        plan=plan,
        plan_expires_at=(
            None if plan == UserPlan.FREE
            else datetime.now(timezone.utc) + timedelta(days=30)
        ),
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A free-plan user."""
    return await _create_user(db_session, "freelancer@example.com", UserPlan.FREE)


@pytest_asyncio.fixture
async def pro_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "pro@example.com", UserPlan.PRO, name="Pro User")


@pytest_asyncio.fixture
async def agency_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "agency@example.com", UserPlan.AGENCY, name="Agency Owner")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second tenant, for isolation checks."""
    return await _create_user(db_session, "other@example.com", UserPlan.PRO, name="Other Tenant")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, monkeypatch) -> User:
    """A user whose email is on the admin list."""
    monkeypatch.setattr(settings, "admin_emails", "admin@example.com")
    return await _create_user(db_session, "admin@example.com", UserPlan.FREE, name="Platform Admin")


@pytest_asyncio.fixture
async def test_company(db_session: AsyncSession, pro_user: User) -> CompanyInfo:
    company = CompanyInfo(
        user_id=pro_user.id,
        business_name="Acme Studio",
        company_email="billing@acmestudio.com",
        city="Pune",
        country="India",
    )
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


@pytest_asyncio.fixture
async def test_client_record(db_session: AsyncSession, pro_user: User) -> Client:
    """A saved client owned by pro_user."""
    record = Client(
        user_id=pro_user.id,
        name="Jane Client",
        email="jane@clientco.com",
        business_name="Client Co",
        phone="+1 555 0100",
    )
    db_session.add(record)
    await db_session.commit()
    await db_session.refresh(record)
    return record


@pytest_asyncio.fixture
async def test_invoice(db_session: AsyncSession, pro_user: User) -> Invoice:
    """A sent invoice of 2 x 50 + 1 x 25 with 10% tax."""
    invoice = Invoice(
        user_id=pro_user.id,
        invoice_number="INV-0001",
        client_name="Jane Client",
        client_email="jane@clientco.com",
        status=InvoiceStatus.SENT,
        currency="USD",
        hours_enabled=True,
        tax_enabled=True,
        tax_rate=Decimal("10.00"),
        discount_enabled=False,
        discount_type=DiscountType.FLAT,
        discount_value=Decimal("0.00"),
        subtotal=Decimal("125.00"),
        tax_amount=Decimal("12.50"),
        discount_amount=Decimal("0.00"),
        total=Decimal("137.50"),
        due_date=date.today() + timedelta(days=14),
        is_recurring=False,
        items=[
            InvoiceItem(
                title="Design", hours=Decimal("2"), rate=Decimal("50.00"),
                subtotal=Decimal("100.00"), order_index=0,
            ),
            InvoiceItem(
                title="Review", hours=Decimal("1"), rate=Decimal("25.00"),
                subtotal=Decimal("25.00"), order_index=1,
            ),
        ],
    )
    db_session.add(invoice)
    await db_session.commit()
    await db_session.refresh(invoice)
    return invoice


def _headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Generate authorization headers for the free-plan user."""
    return _headers(test_user)


@pytest_asyncio.fixture
async def pro_headers(pro_user: User) -> dict:
    return _headers(pro_user)


@pytest_asyncio.fixture
async def agency_headers(agency_user: User) -> dict:
    return _headers(agency_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers(admin_user)
