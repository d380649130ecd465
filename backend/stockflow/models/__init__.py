from .base import (
    Adjustment,
    AdjustmentItem,
    Delivery,
    DeliveryItem,
    DocumentStatus,
    DocumentType,
    MoveHistory,
    MovementType,
    Product,
    ProductStock,
    Receipt,
    ReceiptItem,
    Transfer,
    TransferItem,
    Warehouse,
)

__all__ = [
    "Adjustment",
    "AdjustmentItem",
    "Delivery",
    "DeliveryItem",
    "DocumentStatus",
    "DocumentType",
    "MoveHistory",
    "MovementType",
    "Product",
    "ProductStock",
    "Receipt",
    "ReceiptItem",
    "Transfer",
    "TransferItem",
    "Warehouse",
]
