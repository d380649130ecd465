from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentType(str, Enum):
    RECEIPT = "receipt"
    DELIVERY = "delivery"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    WAITING = "waiting"
    READY = "ready"
    DONE = "done"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.DONE, DocumentStatus.CANCELED)


class Warehouse(SQLModel, table=True):
    __tablename__ = "warehouses"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    location: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    sku: str = Field(index=True, unique=True)
    name: str
    category: Optional[str] = Field(default=None, index=True)
    unit_of_measure: str = Field(default="unit")
    reorder_level: Optional[int] = Field(default=None)
    reorder_quantity: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class ProductStock(SQLModel, table=True):
    """Current on-hand quantity for one (product, warehouse) pair."""

    __tablename__ = "product_stocks"

    product_id: int = Field(foreign_key="products.id", primary_key=True)
    warehouse_id: int = Field(foreign_key="warehouses.id", primary_key=True)
    quantity: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class MoveHistory(SQLModel, table=True):
    """Append-only record of one applied movement."""

    __tablename__ = "move_history"
    __table_args__ = (
        Index("ix_move_history_product_warehouse_timestamp", "product_id", "warehouse_id", "timestamp"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id")
    warehouse_id: int = Field(foreign_key="warehouses.id")
    document_id: int = Field(index=True)
    document_type: DocumentType = Field(index=True)
    # signed requested magnitude; may differ from quantity_after - quantity_before at the zero floor
    quantity: int
    quantity_before: int
    quantity_after: int
    movement_type: MovementType
    user_id: str
    timestamp: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)


class Receipt(SQLModel, table=True):
    __tablename__ = "receipts"

    id: Optional[int] = Field(default=None, primary_key=True)
    reference: Optional[str] = Field(default=None, index=True, unique=True)
    supplier: str
    warehouse_id: int = Field(foreign_key="warehouses.id", index=True)
    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, index=True)
    created_by: str
    scheduled_date: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class ReceiptItem(SQLModel, table=True):
    __tablename__ = "receipt_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    receipt_id: int = Field(foreign_key="receipts.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    quantity: int = Field(ge=0)
    unit_price: Optional[float] = Field(default=None)


class Delivery(SQLModel, table=True):
    __tablename__ = "deliveries"

    id: Optional[int] = Field(default=None, primary_key=True)
    reference: Optional[str] = Field(default=None, index=True, unique=True)
    customer: str
    warehouse_id: int = Field(foreign_key="warehouses.id", index=True)
    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, index=True)
    created_by: str
    scheduled_date: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class DeliveryItem(SQLModel, table=True):
    __tablename__ = "delivery_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    delivery_id: int = Field(foreign_key="deliveries.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    quantity: int = Field(ge=0)


class Transfer(SQLModel, table=True):
    __tablename__ = "transfers"

    id: Optional[int] = Field(default=None, primary_key=True)
    reference: Optional[str] = Field(default=None, index=True, unique=True)
    from_warehouse_id: int = Field(foreign_key="warehouses.id", index=True)
    to_warehouse_id: int = Field(foreign_key="warehouses.id", index=True)
    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, index=True)
    created_by: str
    scheduled_date: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class TransferItem(SQLModel, table=True):
    __tablename__ = "transfer_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    transfer_id: int = Field(foreign_key="transfers.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    quantity: int = Field(ge=0)


class Adjustment(SQLModel, table=True):
    __tablename__ = "adjustments"

    id: Optional[int] = Field(default=None, primary_key=True)
    reference: Optional[str] = Field(default=None, index=True, unique=True)
    reason: str
    warehouse_id: int = Field(foreign_key="warehouses.id", index=True)
    status: DocumentStatus = Field(default=DocumentStatus.DRAFT, index=True)
    created_by: str
    scheduled_date: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class AdjustmentItem(SQLModel, table=True):
    __tablename__ = "adjustment_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    adjustment_id: int = Field(foreign_key="adjustments.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    counted_quantity: int = Field(ge=0)
    # snapshot of the on-hand quantity when the item was stored
    recorded_quantity: int
    difference: int
