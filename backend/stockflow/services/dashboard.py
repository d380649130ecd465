"""Read-only KPIs derived from stock levels and open documents."""

from datetime import date
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Session, col, select

from stockflow.core.errors import NotFoundError
from stockflow.crud import stock as stock_crud
from stockflow.models.base import DocumentStatus, DocumentType, Product, Warehouse, utc_now
from stockflow.schemas.inventory import ProductStockSummary, WarehouseStock, WarehouseStockSummary
from stockflow.services import workflow

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"

QUEUE_PREVIEW = 6
TOP_PRODUCTS = 5


class ProductStatus(BaseModel):
    product_id: int
    sku: str
    name: str
    reorder_level: Optional[int] = None
    total_quantity: int
    stock_status: str


class DashboardKPIs(BaseModel):
    total_products: int
    low_stock_items: int
    out_of_stock_items: int
    pending_receipts: int
    pending_deliveries: int
    scheduled_transfers: int
    pending_adjustments: int


def classify(total: int, reorder_level: Optional[int]) -> str:
    if total <= 0:
        return OUT_OF_STOCK
    if reorder_level is not None and total <= reorder_level:
        return LOW_STOCK
    return IN_STOCK


def product_stock_status(db: Session) -> list[ProductStatus]:
    return [
        ProductStatus(
            product_id=product.id,
            sku=product.sku,
            name=product.name,
            reorder_level=product.reorder_level,
            total_quantity=total,
            stock_status=classify(total, product.reorder_level),
        )
        for product, total in stock_crud.product_totals(db)
    ]


def get_kpis(db: Session) -> DashboardKPIs:
    statuses = product_stock_status(db)
    return DashboardKPIs(
        total_products=len(statuses),
        low_stock_items=sum(1 for item in statuses if item.stock_status == LOW_STOCK),
        out_of_stock_items=sum(1 for item in statuses if item.stock_status == OUT_OF_STOCK),
        pending_receipts=workflow.count_pending(db, workflow.get_kind(DocumentType.RECEIPT)),
        pending_deliveries=workflow.count_pending(db, workflow.get_kind(DocumentType.DELIVERY)),
        scheduled_transfers=workflow.count_pending(db, workflow.get_kind(DocumentType.TRANSFER)),
        pending_adjustments=workflow.count_pending(db, workflow.get_kind(DocumentType.ADJUSTMENT)),
    )


def product_summary(db: Session, product_id: int) -> ProductStockSummary:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    rows = stock_crud.list_stock_levels(db, product_id=product_id)
    quantities = [stock.quantity for stock, _, _ in rows]
    total = sum(quantities)
    return ProductStockSummary(
        product_id=product.id,
        product_name=product.name,
        sku=product.sku,
        reorder_level=product.reorder_level,
        warehouse_count=len(rows),
        total_quantity=total,
        min_quantity=min(quantities) if quantities else None,
        max_quantity=max(quantities) if quantities else None,
        stock_status=classify(total, product.reorder_level),
        warehouses=[
            WarehouseStock(warehouse_id=warehouse.id, warehouse_name=warehouse.name, quantity=stock.quantity)
            for stock, _, warehouse in rows
        ],
    )


def warehouse_summary(db: Session, warehouse_id: int) -> WarehouseStockSummary:
    warehouse = db.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("Warehouse", warehouse_id)
    rows = stock_crud.list_stock_levels(db, warehouse_id=warehouse_id)
    statuses = [classify(stock.quantity, product.reorder_level) for stock, product, _ in rows]
    return WarehouseStockSummary(
        warehouse_id=warehouse.id,
        warehouse_name=warehouse.name,
        total_products=len(rows),
        products_in_stock=sum(1 for stock, _, _ in rows if stock.quantity > 0),
        products_out_of_stock=statuses.count(OUT_OF_STOCK),
        products_low_stock=statuses.count(LOW_STOCK),
        total_quantity=sum(stock.quantity for stock, _, _ in rows),
    )


class QueuedDocument(BaseModel):
    id: int
    reference: str
    status: DocumentStatus
    scheduled_date: Optional[date] = None
    counterparty: str
    warehouse_id: int
    product_names: list[str]


class OperationsQueue(BaseModel):
    open: int
    late: int
    upcoming: int
    waiting: int
    documents: list[QueuedDocument]


class DashboardOperations(BaseModel):
    receipts: OperationsQueue
    deliveries: OperationsQueue
    top_products: list[str]


def _open_documents(db: Session, kind: workflow.DocumentKind) -> list:
    model = kind.model
    query = (
        select(model)
        .where(col(model.status).not_in([DocumentStatus.DONE, DocumentStatus.CANCELED]))
        .order_by(
            col(model.scheduled_date).is_(None),
            col(model.scheduled_date),
            col(model.created_at).desc(),
            col(model.id).desc(),
        )
    )
    return list(db.exec(query).all())


def _queue(db: Session, document_type: DocumentType, counterparty: str, today: date) -> OperationsQueue:
    kind = workflow.get_kind(document_type)
    documents = _open_documents(db, kind)
    preview = []
    for document in documents[:QUEUE_PREVIEW]:
        products = [db.get(Product, item.product_id) for item in workflow.list_items(db, kind, document)]
        preview.append(
            QueuedDocument(
                id=document.id,
                reference=document.reference,
                status=document.status,
                scheduled_date=document.scheduled_date,
                counterparty=getattr(document, counterparty),
                warehouse_id=document.warehouse_id,
                product_names=[product.name for product in products if product is not None],
            )
        )
    return OperationsQueue(
        open=len(documents),
        late=sum(1 for doc in documents if doc.scheduled_date is not None and doc.scheduled_date < today),
        upcoming=sum(1 for doc in documents if doc.scheduled_date is not None and doc.scheduled_date > today),
        waiting=sum(1 for doc in documents if doc.status == DocumentStatus.WAITING),
        documents=preview,
    )


def get_operations(db: Session, today: Optional[date] = None) -> DashboardOperations:
    """Open receipts and deliveries split by schedule: late, upcoming and waiting."""
    today = today or utc_now().date()
    receipts = _queue(db, DocumentType.RECEIPT, "supplier", today)
    top_products = [name for document in receipts.documents for name in document.product_names][:TOP_PRODUCTS]
    return DashboardOperations(
        receipts=receipts,
        deliveries=_queue(db, DocumentType.DELIVERY, "customer", today),
        top_products=top_products,
    )
