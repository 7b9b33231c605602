"""Pytest fixtures for embedding pipeline and similarity search tests.

Provides reusable test fixtures for:
- Database session on an in-memory SQLite engine (tables created per test)
- Product factory writing committed catalog rows
- Deterministic fake text and image embedding providers
- No-op sleep recorder for batch pauses

SQLite has no pgvector operator, so the primary similarity query fails there
and searches run through the manual scan. PostgreSQL behaviour is covered by
tests/integration/test_vector_search_pg.py when PGVECTOR_TEST_DATABASE_URL is set.

Usage:
    def test_search(db_session, make_product, text_provider, merchant):
        make_product(merchant.user_id, "Trail Runner")
        ...
"""

import sys
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key")
os.environ.setdefault("LOG_JSON", "false")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from typing import List, Optional
from uuid import UUID, uuid4

from auth.roles import Requester, UserRole
from database import engine, SessionLocal
from fakes import FakeTextProvider, FakeImageProvider, SleepRecorder
from models import Base, Product, ProductVariant


@pytest.fixture
def db_session():
    """Fresh schema per test on the shared in-memory engine."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def merchant(owner_id) -> Requester:
    return Requester(user_id=owner_id, roles=frozenset({UserRole.MERCHANT}))


@pytest.fixture
def admin() -> Requester:
    return Requester(user_id=uuid4(), roles=frozenset({UserRole.ADMIN}))


@pytest.fixture
def make_product(db_session):
    """Factory creating committed products.

    Products made later are older (created_at steps back one minute each),
    so catalog order (created_at desc) equals creation order.
    """
    base_time = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(
        owner: UUID,
        name: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
        price: Optional[float] = None,
        stock: Optional[int] = None,
        images: Optional[list] = None,
        variants: Optional[List[dict]] = None,
        is_active: bool = True,
    ) -> Product:
        product = Product(
            owner_id=owner,
            name=name,
            description=description,
            category=category,
            price=price,
            stock=stock,
            images=images or [],
            is_active=is_active,
            created_at=base_time - timedelta(minutes=counter["n"]),
        )
        counter["n"] += 1
        for position, variant in enumerate(variants or []):
            product.variants.append(ProductVariant(position=position, **variant))
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture
def text_provider() -> FakeTextProvider:
    return FakeTextProvider()


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()
