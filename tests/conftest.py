"""Pytest configuration for tests - in-memory database per test."""

import os

# Set test database URL BEFORE any imports from dues
# This ensures the SessionLocal and engine use an in-memory database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from datetime import date, datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dues.config import reset_settings  # noqa: E402
from dues.models import Base, Member, Voucher  # noqa: E402


@pytest.fixture
def db_engine():
    """Create a fresh in-memory SQLite engine with all tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(db_engine):
    """Create test database session."""
    SessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings from the environment for every test."""
    reset_settings()
    yield
    reset_settings()


class FixedClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + timedelta(minutes=1)
        return value


@pytest.fixture
def clock():
    """Deterministic payment timestamp source."""
    return FixedClock()


@pytest.fixture
def make_member(db):
    """Factory creating members with monthly 10.00 billing by default."""
    counter = {"n": 0}

    def _make(
        name: str = "Anna Berg",
        join_date: date | None = date(2024, 1, 10),
        amount: Decimal | str | None = Decimal("10.00"),
        interval: str | None = "MONTHLY",
        status: str = "ACTIVE",
        leave_date: date | None = None,
        next_due_date: date | None = None,
        email: str | None = None,
    ) -> Member:
        counter["n"] += 1
        member = Member(
            member_no=f"M-{counter['n']:04d}",
            name=name,
            email=email,
            status=status,
            join_date=join_date,
            leave_date=leave_date,
            next_due_date=next_due_date,
            contribution_amount=Decimal(amount) if amount is not None else None,
            contribution_interval=interval,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture
def make_voucher(db):
    """Factory creating accounting vouchers."""
    counter = {"n": 0}

    def _make(
        voucher_date: date,
        amount: Decimal | str,
        description: str | None = None,
        counterparty: str | None = None,
    ) -> Voucher:
        counter["n"] += 1
        voucher = Voucher(
            voucher_no=f"V-{counter['n']:04d}",
            voucher_date=voucher_date,
            gross_amount=Decimal(amount),
            description=description,
            counterparty=counterparty,
        )
        db.add(voucher)
        db.commit()
        db.refresh(voucher)
        return voucher

    return _make
