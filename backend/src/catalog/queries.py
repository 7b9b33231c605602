"""Read-only catalog queries used by the embedding pipelines.

The catalog is maintained elsewhere in the dashboard. Every query here is
explicitly filtered by owner_id.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from models import Product


def _active_products(owner_id: UUID):
    return select(Product).where(
        Product.owner_id == owner_id,
        Product.is_active == True,  # noqa: E712
    )


def list_active_products(
    db: Session,
    owner_id: UUID,
    offset: int = 0,
    limit: int = 200,
) -> List[Product]:
    """Page through an owner's active products with variants loaded.

    Order is stable across calls: newest first, then id.
    """
    stmt = (
        _active_products(owner_id)
        .options(selectinload(Product.variants))
        .order_by(Product.created_at.desc(), Product.id)
        .offset(offset)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def count_active_products(db: Session, owner_id: UUID) -> int:
    """Number of active products the owner has."""
    stmt = select(func.count(Product.id)).where(
        Product.owner_id == owner_id,
        Product.is_active == True,  # noqa: E712
    )
    return db.execute(stmt).scalar() or 0


def get_active_product(db: Session, owner_id: UUID, product_id: UUID) -> Optional[Product]:
    """Single active product of the owner, with variants, or None."""
    stmt = (
        _active_products(owner_id)
        .where(Product.id == product_id)
        .options(selectinload(Product.variants))
    )
    return db.execute(stmt).scalars().first()


def get_owner_product(db: Session, owner_id: UUID, product_id: UUID) -> Optional[Product]:
    """Product of the owner regardless of active flag, or None."""
    stmt = select(Product).where(Product.id == product_id, Product.owner_id == owner_id)
    return db.execute(stmt).scalars().first()
