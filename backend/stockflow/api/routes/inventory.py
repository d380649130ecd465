from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from stockflow.api.deps import get_actor_id, get_db
from stockflow.api.routes.documents import serialize_document
from stockflow.crud import stock as stock_crud
from stockflow.models.base import DocumentType
from stockflow.schemas.documents import AdjustmentRead
from stockflow.schemas.inventory import (
    HistoryFilters,
    MovementRead,
    ProductStockSummary,
    StockBulkInitialize,
    StockInitialize,
    StockLevelRead,
    StockQuantity,
    WarehouseStockSummary,
)
from stockflow.services import dashboard, ledger, workflow

router = APIRouter(tags=["inventory"])


@router.get("/stock", response_model=list[StockLevelRead])
def list_stock_levels(
    product_id: int | None = None,
    warehouse_id: int | None = None,
    category: str | None = None,
    low_stock: bool = False,
    out_of_stock: bool = False,
    db: Session = Depends(get_db),
) -> list[StockLevelRead]:
    levels = [
        StockLevelRead(
            product_id=product.id,
            product_name=product.name,
            sku=product.sku,
            category=product.category,
            reorder_level=product.reorder_level,
            warehouse_id=warehouse.id,
            warehouse_name=warehouse.name,
            quantity=stock.quantity,
            stock_status=dashboard.classify(stock.quantity, product.reorder_level),
            updated_at=stock.updated_at,
        )
        for stock, product, warehouse in stock_crud.list_stock_levels(
            db, product_id=product_id, warehouse_id=warehouse_id, category=category
        )
    ]
    if low_stock:
        levels = [level for level in levels if level.stock_status == dashboard.LOW_STOCK]
    if out_of_stock:
        levels = [level for level in levels if level.stock_status == dashboard.OUT_OF_STOCK]
    return levels


@router.get("/stock/products/{product_id}", response_model=ProductStockSummary)
def get_product_stock(product_id: int, db: Session = Depends(get_db)) -> ProductStockSummary:
    return dashboard.product_summary(db, product_id)


@router.get("/stock/warehouses/{warehouse_id}", response_model=WarehouseStockSummary)
def get_warehouse_stock(warehouse_id: int, db: Session = Depends(get_db)) -> WarehouseStockSummary:
    return dashboard.warehouse_summary(db, warehouse_id)


@router.get("/stock/{product_id}/{warehouse_id}", response_model=StockQuantity)
def get_stock_quantity(product_id: int, warehouse_id: int, db: Session = Depends(get_db)) -> StockQuantity:
    return StockQuantity(
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=ledger.get_quantity(db, product_id, warehouse_id),
    )


@router.post("/stock/initialize", response_model=AdjustmentRead, status_code=status.HTTP_201_CREATED)
def initialize_stock(
    payload: StockInitialize,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
) -> AdjustmentRead:
    adjustment = workflow.initialize_stock(
        db,
        product_id=payload.product_id,
        warehouse_id=payload.warehouse_id,
        quantity=payload.quantity,
        reason=payload.reason,
        actor_id=actor_id,
    )
    db.commit()
    return serialize_document(db, workflow.get_kind(DocumentType.ADJUSTMENT), adjustment, AdjustmentRead)


@router.post("/stock/initialize/bulk", response_model=AdjustmentRead, status_code=status.HTTP_201_CREATED)
def initialize_stock_bulk(
    payload: StockBulkInitialize,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_actor_id),
) -> AdjustmentRead:
    adjustment = workflow.initialize_stock_bulk(
        db,
        warehouse_id=payload.warehouse_id,
        counts=[(item.product_id, item.quantity) for item in payload.items],
        reason=payload.reason,
        actor_id=actor_id,
    )
    db.commit()
    return serialize_document(db, workflow.get_kind(DocumentType.ADJUSTMENT), adjustment, AdjustmentRead)


@router.get("/history", response_model=list[MovementRead])
def list_history(
    product_id: int | None = None,
    warehouse_id: int | None = None,
    document_type: DocumentType | None = None,
    document_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int | None = None,
    db: Session = Depends(get_db),
) -> list[MovementRead]:
    filters = HistoryFilters(
        product_id=product_id,
        warehouse_id=warehouse_id,
        document_type=document_type,
        document_id=document_id,
        date_from=date_from,
        date_to=date_to,
    )
    return [MovementRead.model_validate(entry) for entry in ledger.get_history(db, filters, limit)]
