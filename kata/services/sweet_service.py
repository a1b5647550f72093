"""Inventory operations over the sweets table.

Stock adjustments are issued as a single conditional UPDATE so that two
concurrent purchases can never push a quantity below zero.
"""

import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from kata.core.errors import NotFoundError, ValidationError
from kata.database import utcnow
from kata.models.sweet import MAX_STOCK_QUANTITY, Sweet
from kata.schemas import SweetCreate, SweetSearch, SweetUpdate

logger = logging.getLogger(__name__)

SWEET_NOT_FOUND_MESSAGE = 'Sweet not found'
INSUFFICIENT_STOCK_MESSAGE = 'Insufficient stock'
RESTOCK_LIMIT_MESSAGE = f'Stock cannot exceed {MAX_STOCK_QUANTITY}'
DEFAULT_PURCHASE_QUANTITY = 1


def _newest_first(query):
    return query.order_by(Sweet.created_at.desc(), Sweet.id.desc())


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _exists(db: Session, sweet_id: int) -> bool:
    return db.query(Sweet.id).filter(Sweet.id == sweet_id).first() is not None


def create_sweet(db: Session, data: SweetCreate) -> Sweet:
    sweet = Sweet(**data.model_dump())
    db.add(sweet)
    db.commit()
    db.refresh(sweet)

    logger.info('Created sweet %s (%s)', sweet.id, sweet.name)
    return sweet


def list_sweets(db: Session) -> list[Sweet]:
    return _newest_first(db.query(Sweet)).all()


def get_sweet(db: Session, sweet_id: int) -> Sweet:
    sweet = db.get(Sweet, sweet_id)
    if sweet is None:
        raise NotFoundError(SWEET_NOT_FOUND_MESSAGE)
    return sweet


def search_sweets(db: Session, criteria: SweetSearch) -> list[Sweet]:
    query = db.query(Sweet)

    if criteria.name:
        pattern = f'%{_escape_like(criteria.name.lower())}%'
        query = query.filter(func.lower(Sweet.name).like(pattern, escape='\\'))

    if criteria.category is not None:
        query = query.filter(Sweet.category == criteria.category)

    if criteria.min_price is not None:
        query = query.filter(Sweet.price >= criteria.min_price)

    if criteria.max_price is not None:
        query = query.filter(Sweet.price <= criteria.max_price)

    return _newest_first(query).all()


def update_sweet(db: Session, sweet_id: int, data: SweetUpdate) -> Sweet:
    sweet = get_sweet(db, sweet_id)

    changes = data.changes()
    for field_name, value in changes.items():
        setattr(sweet, field_name, value)

    if changes:
        db.commit()
        db.refresh(sweet)
        logger.info('Updated sweet %s fields %s', sweet.id, sorted(changes))
    return sweet


def delete_sweet(db: Session, sweet_id: int) -> None:
    sweet = get_sweet(db, sweet_id)
    db.delete(sweet)
    db.commit()

    logger.info('Deleted sweet %s', sweet_id)


def normalize_purchase_quantity(quantity: int | None) -> int:
    if quantity is None or quantity <= 0:
        return DEFAULT_PURCHASE_QUANTITY
    return quantity


def purchase_sweet(db: Session, sweet_id: int, quantity: int | None = DEFAULT_PURCHASE_QUANTITY) -> Sweet:
    amount = normalize_purchase_quantity(quantity)
    if amount > MAX_STOCK_QUANTITY:
        # No stored quantity can cover this, and binding it could overflow the column type.
        if not _exists(db, sweet_id):
            raise NotFoundError(SWEET_NOT_FOUND_MESSAGE)
        raise ValidationError(INSUFFICIENT_STOCK_MESSAGE)

    result = db.execute(
        update(Sweet)
        .where(Sweet.id == sweet_id, Sweet.quantity >= amount)
        .values(quantity=Sweet.quantity - amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        if not _exists(db, sweet_id):
            raise NotFoundError(SWEET_NOT_FOUND_MESSAGE)
        raise ValidationError(INSUFFICIENT_STOCK_MESSAGE)
    db.commit()

    logger.info('Purchased %s of sweet %s', amount, sweet_id)
    return _reload(db, sweet_id)


def restock_sweet(db: Session, sweet_id: int, quantity: int) -> Sweet:
    if quantity is None or quantity <= 0:
        raise ValidationError('Quantity must be a positive integer')
    if quantity > MAX_STOCK_QUANTITY:
        raise ValidationError(RESTOCK_LIMIT_MESSAGE)

    result = db.execute(
        update(Sweet)
        .where(Sweet.id == sweet_id, Sweet.quantity <= MAX_STOCK_QUANTITY - quantity)
        .values(quantity=Sweet.quantity + quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        if not _exists(db, sweet_id):
            raise NotFoundError(SWEET_NOT_FOUND_MESSAGE)
        raise ValidationError(RESTOCK_LIMIT_MESSAGE)
    db.commit()

    logger.info('Restocked sweet %s with %s', sweet_id, quantity)
    return _reload(db, sweet_id)


def _reload(db: Session, sweet_id: int) -> Sweet:
    sweet = db.get(Sweet, sweet_id, populate_existing=True)
    if sweet is None:
        raise NotFoundError(SWEET_NOT_FOUND_MESSAGE)
    return sweet
