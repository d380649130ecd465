"""Stock movement engine.

Every change to on-hand quantity goes through :func:`apply_movement`, which
reads the current quantity under lock, writes the new quantity and appends the
matching ledger entry as one savepoint. Either both rows change or neither
does.
"""

import logging
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from stockflow.core.config import get_settings
from stockflow.core.errors import InvalidQuantityError, NotFoundError, StorageConflictError
from stockflow.crud import stock as stock_crud
from stockflow.models.base import DocumentType, MoveHistory, MovementType, Product, Warehouse, utc_now
from stockflow.schemas.inventory import HistoryFilters

logger = logging.getLogger(__name__)


def _check_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantityError(quantity)
    return quantity


def resulting_quantity(quantity_before: int, quantity: int, movement_type: MovementType) -> int:
    """Quantity after a movement; outgoing movements stop at zero."""
    if movement_type == MovementType.IN:
        return quantity_before + quantity
    return max(0, quantity_before - quantity)


def apply_movement(
    db: Session,
    *,
    product_id: int,
    warehouse_id: int,
    quantity: int,
    document_id: int,
    document_type: DocumentType,
    movement_type: MovementType,
    actor_id: str,
) -> MoveHistory:
    """Apply one directional quantity change and record it in the ledger.

    The recorded ``quantity`` is the requested magnitude with its sign, even
    when an outgoing movement was clamped at zero, so ``quantity_after -
    quantity_before`` can be smaller than the recorded delta.

    Raises :class:`InvalidQuantityError` before touching the database,
    :class:`NotFoundError` for unknown products or warehouses and
    :class:`StorageConflictError` when the store rejects the unit of work.
    """
    quantity = _check_quantity(quantity)
    movement_type = MovementType(movement_type)
    document_type = DocumentType(document_type)

    try:
        with db.begin_nested():
            if db.get(Product, product_id) is None:
                raise NotFoundError("Product", product_id)
            if db.get(Warehouse, warehouse_id) is None:
                raise NotFoundError("Warehouse", warehouse_id)

            stock = stock_crud.lock_stock_level(db, product_id, warehouse_id)
            if stock is None:
                stock = stock_crud.create_stock_level(db, product_id, warehouse_id)

            quantity_before = stock.quantity
            quantity_after = resulting_quantity(quantity_before, quantity, movement_type)
            stock_crud.save_stock_level(db, stock, quantity_after)

            entry = stock_crud.append_movement(
                db,
                MoveHistory(
                    product_id=product_id,
                    warehouse_id=warehouse_id,
                    document_id=document_id,
                    document_type=document_type,
                    quantity=quantity if movement_type == MovementType.IN else -quantity,
                    quantity_before=quantity_before,
                    quantity_after=quantity_after,
                    movement_type=movement_type,
                    user_id=actor_id,
                    timestamp=utc_now(),
                ),
            )
    except OperationalError as exc:
        logger.error(
            "movement rejected by store: product=%s warehouse=%s document=%s/%s",
            product_id,
            warehouse_id,
            document_type.value,
            document_id,
        )
        raise StorageConflictError(f"Stock update for product {product_id} could not be applied") from exc

    if quantity_after != quantity_before + entry.quantity:
        logger.warning(
            "clamped %s movement at zero: product=%s warehouse=%s requested=%s on_hand=%s",
            movement_type.value,
            product_id,
            warehouse_id,
            quantity,
            quantity_before,
        )
    logger.info(
        "applied %s %s: product=%s warehouse=%s %s -> %s (%s/%s by %s)",
        movement_type.value,
        quantity,
        product_id,
        warehouse_id,
        quantity_before,
        quantity_after,
        document_type.value,
        document_id,
        actor_id,
    )
    return entry


def get_quantity(db: Session, product_id: int, warehouse_id: int) -> int:
    return stock_crud.get_quantity(db, product_id, warehouse_id)


def get_history(
    db: Session, filters: Optional[HistoryFilters] = None, limit: Optional[int] = None
) -> list[MoveHistory]:
    """Ledger entries matching ``filters``, most recent first, capped at the configured limit."""
    cap = get_settings().history_limit
    limit = cap if limit is None else max(0, min(limit, cap))
    return stock_crud.list_movements(db, filters or HistoryFilters(), limit)
