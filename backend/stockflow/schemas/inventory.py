from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stockflow.models.base import DocumentType, MovementType


class HistoryFilters(BaseModel):
    product_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    document_type: Optional[DocumentType] = None
    document_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class MovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    warehouse_id: int
    document_id: int
    document_type: DocumentType
    quantity: int = Field(..., description="Signed requested quantity: positive for in, negative for out")
    quantity_before: int
    quantity_after: int
    movement_type: MovementType
    user_id: str
    timestamp: datetime


class StockQuantity(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int


class StockLevelRead(BaseModel):
    product_id: int
    product_name: str
    sku: str
    category: Optional[str] = None
    reorder_level: Optional[int] = None
    warehouse_id: int
    warehouse_name: str
    quantity: int
    stock_status: str
    updated_at: datetime


class StockInitialize(BaseModel):
    product_id: int
    warehouse_id: int
    quantity: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1)


class StockCount(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=0)


class StockBulkInitialize(BaseModel):
    warehouse_id: int
    reason: str = Field(..., min_length=1)
    items: list[StockCount] = Field(..., min_length=1)


class WarehouseStock(BaseModel):
    warehouse_id: int
    warehouse_name: str
    quantity: int


class ProductStockSummary(BaseModel):
    product_id: int
    product_name: str
    sku: str
    reorder_level: Optional[int] = None
    warehouse_count: int
    total_quantity: int
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    stock_status: str
    warehouses: list[WarehouseStock] = Field(default_factory=list)


class WarehouseStockSummary(BaseModel):
    warehouse_id: int
    warehouse_name: str
    total_products: int
    products_in_stock: int
    products_out_of_stock: int
    products_low_stock: int
    total_quantity: int
