from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from stockflow.models.base import DocumentStatus


class ItemPayload(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=0)


class ReceiptItemPayload(ItemPayload):
    unit_price: Optional[float] = None


class AdjustmentItemPayload(BaseModel):
    product_id: int
    counted_quantity: int = Field(..., ge=0)


class DocumentBase(BaseModel):
    status: DocumentStatus = DocumentStatus.DRAFT
    scheduled_date: Optional[date] = None


class DocumentUpdateBase(BaseModel):
    status: Optional[DocumentStatus] = None
    scheduled_date: Optional[date] = None


class DocumentReadBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    status: DocumentStatus
    scheduled_date: Optional[date] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class ReceiptCreate(DocumentBase):
    supplier: str = Field(..., min_length=1)
    warehouse_id: int
    items: List[ReceiptItemPayload]


class ReceiptUpdate(DocumentUpdateBase):
    supplier: Optional[str] = Field(default=None, min_length=1)
    warehouse_id: Optional[int] = None
    items: Optional[List[ReceiptItemPayload]] = None


class ReceiptRead(DocumentReadBase):
    supplier: str
    warehouse_id: int
    items: List[ReceiptItemPayload] = Field(default_factory=list)


class DeliveryCreate(DocumentBase):
    customer: str = Field(..., min_length=1)
    warehouse_id: int
    items: List[ItemPayload]


class DeliveryUpdate(DocumentUpdateBase):
    customer: Optional[str] = Field(default=None, min_length=1)
    warehouse_id: Optional[int] = None
    items: Optional[List[ItemPayload]] = None


class DeliveryRead(DocumentReadBase):
    customer: str
    warehouse_id: int
    items: List[ItemPayload] = Field(default_factory=list)


class TransferCreate(DocumentBase):
    from_warehouse_id: int
    to_warehouse_id: int
    items: List[ItemPayload]


class TransferUpdate(DocumentUpdateBase):
    from_warehouse_id: Optional[int] = None
    to_warehouse_id: Optional[int] = None
    items: Optional[List[ItemPayload]] = None


class TransferRead(DocumentReadBase):
    from_warehouse_id: int
    to_warehouse_id: int
    items: List[ItemPayload] = Field(default_factory=list)


class AdjustmentCreate(DocumentBase):
    reason: str = Field(..., min_length=1)
    warehouse_id: int
    items: List[AdjustmentItemPayload]


class AdjustmentUpdate(DocumentUpdateBase):
    reason: Optional[str] = Field(default=None, min_length=1)
    warehouse_id: Optional[int] = None
    items: Optional[List[AdjustmentItemPayload]] = None


class AdjustmentItemRead(AdjustmentItemPayload):
    recorded_quantity: int
    difference: int


class AdjustmentRead(DocumentReadBase):
    reason: str
    warehouse_id: int
    items: List[AdjustmentItemRead] = Field(default_factory=list)
