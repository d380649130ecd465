"""Document workflows: receipts, deliveries, transfers and adjustments.

All four document types share one status machine (draft, waiting, ready,
done, canceled; done and canceled are terminal). The only transition with a
side effect is entering ``done``: it applies the document's movements through
the stock movement engine, exactly once, inside the same savepoint as the
status change. Both the explicit :func:`validate_document` action and an
:func:`update_document` call that sets ``status=done`` funnel into
:func:`_enter_done`.

Adjustment items snapshot the live on-hand quantity as ``recorded_quantity``
when they are stored (on creation, when the item list is replaced, or when the
adjustment moves to another warehouse). Validation applies the stored
``difference`` and never re-reads stock.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import delete
from sqlmodel import Session, SQLModel, col, func, select

from stockflow.core.errors import (
    AlreadyValidatedError,
    DocumentClosedError,
    InvalidDocumentError,
    InvalidQuantityError,
    NotFoundError,
)
from stockflow.models.base import (
    Adjustment,
    AdjustmentItem,
    Delivery,
    DeliveryItem,
    DocumentStatus,
    DocumentType,
    MoveHistory,
    MovementType,
    Product,
    Receipt,
    ReceiptItem,
    Transfer,
    TransferItem,
    Warehouse,
    utc_now,
)
from stockflow.schemas.documents import AdjustmentCreate, AdjustmentItemPayload
from stockflow.services import ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedMovement:
    product_id: int
    warehouse_id: int
    quantity: int
    movement_type: MovementType


@dataclass(frozen=True)
class DocumentKind:
    """Everything the shared workflow needs to know about one document type."""

    document_type: DocumentType
    model: type[SQLModel]
    item_model: type[SQLModel]
    item_key: str
    reference_prefix: str
    warehouse_fields: tuple[str, ...]
    build_item: Callable[[Session, Any, Any], SQLModel]
    plan: Callable[[Any, Any], list[PlannedMovement]]
    snapshots_stock: bool = False

    @property
    def label(self) -> str:
        return self.document_type.value


def _receipt_item(db: Session, document: Receipt, payload: Any) -> ReceiptItem:
    return ReceiptItem(
        receipt_id=document.id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        unit_price=getattr(payload, "unit_price", None),
    )


def _delivery_item(db: Session, document: Delivery, payload: Any) -> DeliveryItem:
    return DeliveryItem(delivery_id=document.id, product_id=payload.product_id, quantity=payload.quantity)


def _transfer_item(db: Session, document: Transfer, payload: Any) -> TransferItem:
    return TransferItem(transfer_id=document.id, product_id=payload.product_id, quantity=payload.quantity)


def _adjustment_item(db: Session, document: Adjustment, payload: Any) -> AdjustmentItem:
    recorded = ledger.get_quantity(db, payload.product_id, document.warehouse_id)
    return AdjustmentItem(
        adjustment_id=document.id,
        product_id=payload.product_id,
        counted_quantity=payload.counted_quantity,
        recorded_quantity=recorded,
        difference=payload.counted_quantity - recorded,
    )


def _receipt_moves(document: Receipt, item: ReceiptItem) -> list[PlannedMovement]:
    return [PlannedMovement(item.product_id, document.warehouse_id, item.quantity, MovementType.IN)]


def _delivery_moves(document: Delivery, item: DeliveryItem) -> list[PlannedMovement]:
    return [PlannedMovement(item.product_id, document.warehouse_id, item.quantity, MovementType.OUT)]


def _transfer_moves(document: Transfer, item: TransferItem) -> list[PlannedMovement]:
    return [
        PlannedMovement(item.product_id, document.from_warehouse_id, item.quantity, MovementType.OUT),
        PlannedMovement(item.product_id, document.to_warehouse_id, item.quantity, MovementType.IN),
    ]


def _adjustment_moves(document: Adjustment, item: AdjustmentItem) -> list[PlannedMovement]:
    if item.difference == 0:
        return []
    direction = MovementType.IN if item.difference > 0 else MovementType.OUT
    return [PlannedMovement(item.product_id, document.warehouse_id, abs(item.difference), direction)]


KINDS: dict[DocumentType, DocumentKind] = {
    DocumentType.RECEIPT: DocumentKind(
        document_type=DocumentType.RECEIPT,
        model=Receipt,
        item_model=ReceiptItem,
        item_key="receipt_id",
        reference_prefix="WH/IN/",
        warehouse_fields=("warehouse_id",),
        build_item=_receipt_item,
        plan=_receipt_moves,
    ),
    DocumentType.DELIVERY: DocumentKind(
        document_type=DocumentType.DELIVERY,
        model=Delivery,
        item_model=DeliveryItem,
        item_key="delivery_id",
        reference_prefix="WH/OUT/",
        warehouse_fields=("warehouse_id",),
        build_item=_delivery_item,
        plan=_delivery_moves,
    ),
    DocumentType.TRANSFER: DocumentKind(
        document_type=DocumentType.TRANSFER,
        model=Transfer,
        item_model=TransferItem,
        item_key="transfer_id",
        reference_prefix="WH/TR/",
        warehouse_fields=("from_warehouse_id", "to_warehouse_id"),
        build_item=_transfer_item,
        plan=_transfer_moves,
    ),
    DocumentType.ADJUSTMENT: DocumentKind(
        document_type=DocumentType.ADJUSTMENT,
        model=Adjustment,
        item_model=AdjustmentItem,
        item_key="adjustment_id",
        reference_prefix="WH/ADJ/",
        warehouse_fields=("warehouse_id",),
        build_item=_adjustment_item,
        plan=_adjustment_moves,
        snapshots_stock=True,
    ),
}


def get_kind(document_type: DocumentType) -> DocumentKind:
    return KINDS[DocumentType(document_type)]


def get_document(db: Session, kind: DocumentKind, document_id: int) -> Any:
    document = db.get(kind.model, document_id)
    if document is None:
        raise NotFoundError(kind.label.capitalize(), document_id)
    return document


def lock_document(db: Session, kind: DocumentKind, document_id: int) -> Any:
    """Fresh read of the document row under lock, for status transitions."""
    statement = (
        select(kind.model)
        .where(kind.model.id == document_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    document = db.exec(statement).first()
    if document is None:
        raise NotFoundError(kind.label.capitalize(), document_id)
    return document


def list_items(db: Session, kind: DocumentKind, document: Any) -> list[Any]:
    key = getattr(kind.item_model, kind.item_key)
    query = select(kind.item_model).where(key == document.id).order_by(kind.item_model.id)
    return list(db.exec(query).all())


def list_documents(
    db: Session,
    kind: DocumentKind,
    status: Optional[DocumentStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Any]:
    query = select(kind.model)
    if status is not None:
        query = query.where(kind.model.status == status)
    query = query.order_by(col(kind.model.created_at).desc(), col(kind.model.id).desc())
    return list(db.exec(query.offset(offset).limit(limit)).all())


def count_pending(db: Session, kind: DocumentKind) -> int:
    query = (
        select(func.count())
        .select_from(kind.model)
        .where(col(kind.model.status).not_in([DocumentStatus.DONE, DocumentStatus.CANCELED]))
    )
    return int(db.exec(query).one())


def _check_references(db: Session, kind: DocumentKind, document: Any, items: Iterable[Any]) -> None:
    for field_name in kind.warehouse_fields:
        warehouse_id = getattr(document, field_name)
        if db.get(Warehouse, warehouse_id) is None:
            raise NotFoundError("Warehouse", warehouse_id)
    if kind.document_type == DocumentType.TRANSFER and document.from_warehouse_id == document.to_warehouse_id:
        raise InvalidDocumentError("Transfer source and destination warehouses must differ")
    items = list(items)
    if kind.snapshots_stock:
        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise InvalidDocumentError("Each product may appear only once in an adjustment")
    for item in items:
        if db.get(Product, item.product_id) is None:
            raise NotFoundError("Product", item.product_id)


def _replace_items(db: Session, kind: DocumentKind, document: Any, payloads: Sequence[Any]) -> list[Any]:
    key = getattr(kind.item_model, kind.item_key)
    db.exec(delete(kind.item_model).where(key == document.id))
    items = [kind.build_item(db, document, payload) for payload in payloads]
    db.add_all(items)
    db.flush()
    return items


def _guard_open(kind: DocumentKind, document: Any, requested: Optional[DocumentStatus]) -> None:
    current = DocumentStatus(document.status)
    if current == DocumentStatus.DONE and requested == DocumentStatus.DONE:
        raise AlreadyValidatedError(kind.label, document.reference)
    if current.is_terminal:
        raise DocumentClosedError(kind.label, document.reference, current.value)


def _touch(db: Session, document: Any) -> None:
    document.updated_at = utc_now()
    db.add(document)


def _enter_done(db: Session, kind: DocumentKind, document: Any, actor_id: str) -> list[MoveHistory]:
    """Apply every movement of ``document`` and mark it done.

    Must run inside the caller's savepoint so the movements and the status
    change commit or roll back together.
    """
    entries = []
    for item in list_items(db, kind, document):
        for move in kind.plan(document, item):
            entries.append(
                ledger.apply_movement(
                    db,
                    product_id=move.product_id,
                    warehouse_id=move.warehouse_id,
                    quantity=move.quantity,
                    document_id=document.id,
                    document_type=kind.document_type,
                    movement_type=move.movement_type,
                    actor_id=actor_id,
                )
            )
    document.status = DocumentStatus.DONE
    _touch(db, document)
    db.flush()
    logger.info("validated %s %s with %d movement(s)", kind.label, document.reference, len(entries))
    return entries


def create_document(db: Session, kind: DocumentKind, payload: BaseModel, actor_id: str) -> Any:
    """Store a new document with its items; a document created as done is validated at once."""
    target = DocumentStatus(payload.status)
    header = payload.model_dump(exclude={"items", "status"})
    document = kind.model(
        **header,
        status=DocumentStatus.DRAFT if target == DocumentStatus.DONE else target,
        created_by=actor_id,
    )
    with db.begin_nested():
        _check_references(db, kind, document, payload.items)
        db.add(document)
        db.flush()
        document.reference = f"{kind.reference_prefix}{document.id:04d}"
        _replace_items(db, kind, document, payload.items)
        if target == DocumentStatus.DONE:
            _enter_done(db, kind, document, actor_id)
        else:
            db.flush()
    logger.info("created %s %s (%s) by %s", kind.label, document.reference, document.status.value, actor_id)
    return document


def update_document(
    db: Session, kind: DocumentKind, document_id: int, payload: BaseModel, actor_id: str
) -> Any:
    """Edit an open document; setting ``status=done`` validates it like :func:`validate_document`."""
    document = lock_document(db, kind, document_id)
    requested = payload.status
    _guard_open(kind, document, requested)

    changes = payload.model_dump(exclude_unset=True, exclude={"items", "status"})
    changes = {key: value for key, value in changes.items() if value is not None or key == "scheduled_date"}
    with db.begin_nested():
        moved = any(
            field_name in changes and changes[field_name] != getattr(document, field_name)
            for field_name in kind.warehouse_fields
        )
        for key, value in changes.items():
            setattr(document, key, value)
        _check_references(db, kind, document, payload.items or [])

        if payload.items is not None:
            _replace_items(db, kind, document, payload.items)
        elif kind.snapshots_stock and moved:
            counted = [
                AdjustmentItemPayload(product_id=item.product_id, counted_quantity=item.counted_quantity)
                for item in list_items(db, kind, document)
            ]
            _replace_items(db, kind, document, counted)

        if requested == DocumentStatus.DONE:
            _enter_done(db, kind, document, actor_id)
        else:
            if requested is not None:
                document.status = requested
            _touch(db, document)
            db.flush()
    return document


def validate_document(db: Session, kind: DocumentKind, document_id: int, actor_id: str) -> list[MoveHistory]:
    document = lock_document(db, kind, document_id)
    _guard_open(kind, document, DocumentStatus.DONE)
    with db.begin_nested():
        return _enter_done(db, kind, document, actor_id)


def cancel_document(db: Session, kind: DocumentKind, document_id: int, actor_id: str) -> Any:
    document = lock_document(db, kind, document_id)
    _guard_open(kind, document, DocumentStatus.CANCELED)
    with db.begin_nested():
        document.status = DocumentStatus.CANCELED
        _touch(db, document)
    logger.info("canceled %s %s by %s", kind.label, document.reference, actor_id)
    return document


def initialize_stock(
    db: Session, *, product_id: int, warehouse_id: int, quantity: int, reason: str, actor_id: str
) -> Adjustment:
    """Set an absolute on-hand quantity through a validated one-line adjustment."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidQuantityError(quantity)
    payload = AdjustmentCreate(
        reason=reason,
        warehouse_id=warehouse_id,
        status=DocumentStatus.DONE,
        items=[AdjustmentItemPayload(product_id=product_id, counted_quantity=quantity)],
    )
    return create_document(db, KINDS[DocumentType.ADJUSTMENT], payload, actor_id)


def initialize_stock_bulk(
    db: Session, *, warehouse_id: int, counts: Sequence[tuple[int, int]], reason: str, actor_id: str
) -> Adjustment:
    """Set several absolute on-hand quantities in one warehouse with a single validated adjustment.

    ``counts`` holds ``(product_id, quantity)`` pairs; one bad line rejects the whole batch.
    """
    if not counts:
        raise InvalidDocumentError("Bulk stock initialization needs at least one item")
    for _, quantity in counts:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidQuantityError(quantity)
    payload = AdjustmentCreate(
        reason=reason,
        warehouse_id=warehouse_id,
        status=DocumentStatus.DONE,
        items=[
            AdjustmentItemPayload(product_id=product_id, counted_quantity=quantity) for product_id, quantity in counts
        ],
    )
    return create_document(db, KINDS[DocumentType.ADJUSTMENT], payload, actor_id)
