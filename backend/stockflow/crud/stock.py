"""Quantity store and movement ledger persistence.

Nothing outside :mod:`stockflow.services.ledger` should call the write
helpers here; the read helpers are shared with the dashboard and the API.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from stockflow.models.base import MoveHistory, Product, ProductStock, Warehouse, utc_now
from stockflow.schemas.inventory import HistoryFilters

logger = logging.getLogger(__name__)


def lock_stock_level(db: Session, product_id: int, warehouse_id: int) -> Optional[ProductStock]:
    statement = (
        select(ProductStock)
        .where(ProductStock.product_id == product_id, ProductStock.warehouse_id == warehouse_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.exec(statement).first()


def create_stock_level(db: Session, product_id: int, warehouse_id: int) -> ProductStock:
    """Insert an empty stock row, falling back to the row a concurrent writer created."""
    try:
        with db.begin_nested():
            stock = ProductStock(product_id=product_id, warehouse_id=warehouse_id, quantity=0)
            db.add(stock)
        return stock
    except IntegrityError:
        logger.debug("stock row race for product=%s warehouse=%s, re-reading", product_id, warehouse_id)
        stock = lock_stock_level(db, product_id, warehouse_id)
        if stock is None:
            raise
        return stock


def get_quantity(db: Session, product_id: int, warehouse_id: int) -> int:
    statement = select(ProductStock.quantity).where(
        ProductStock.product_id == product_id, ProductStock.warehouse_id == warehouse_id
    )
    quantity = db.exec(statement).first()
    return quantity if quantity is not None else 0


def save_stock_level(db: Session, stock: ProductStock, quantity: int) -> ProductStock:
    stock.quantity = quantity
    stock.updated_at = utc_now()
    db.add(stock)
    return stock


def append_movement(db: Session, entry: MoveHistory) -> MoveHistory:
    db.add(entry)
    db.flush()
    return entry


def list_movements(db: Session, filters: HistoryFilters, limit: int) -> list[MoveHistory]:
    query = select(MoveHistory)
    if filters.product_id is not None:
        query = query.where(MoveHistory.product_id == filters.product_id)
    if filters.warehouse_id is not None:
        query = query.where(MoveHistory.warehouse_id == filters.warehouse_id)
    if filters.document_type is not None:
        query = query.where(MoveHistory.document_type == filters.document_type)
    if filters.document_id is not None:
        query = query.where(MoveHistory.document_id == filters.document_id)
    if filters.date_from is not None:
        query = query.where(MoveHistory.timestamp >= filters.date_from)
    if filters.date_to is not None:
        query = query.where(MoveHistory.timestamp <= filters.date_to)
    query = query.order_by(MoveHistory.timestamp.desc(), MoveHistory.id.desc()).limit(limit)
    return list(db.exec(query).all())


def list_stock_levels(
    db: Session,
    product_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    category: Optional[str] = None,
) -> list[tuple[ProductStock, Product, Warehouse]]:
    query = (
        select(ProductStock, Product, Warehouse)
        .join(Product, Product.id == ProductStock.product_id)
        .join(Warehouse, Warehouse.id == ProductStock.warehouse_id)
    )
    if product_id is not None:
        query = query.where(ProductStock.product_id == product_id)
    if warehouse_id is not None:
        query = query.where(ProductStock.warehouse_id == warehouse_id)
    if category:
        query = query.where(Product.category == category)
    query = query.order_by(Product.name, Warehouse.name)
    return [tuple(row) for row in db.exec(query).all()]


def product_totals(db: Session) -> list[tuple[Product, int]]:
    """Every product with its on-hand total summed over all warehouses."""
    query = (
        select(Product, func.coalesce(func.sum(ProductStock.quantity), 0).label("total"))
        .join(ProductStock, ProductStock.product_id == Product.id, isouter=True)
        .group_by(Product.id)
        .order_by(Product.name)
    )
    return [(product, int(total)) for product, total in db.exec(query).all()]
