from fastapi import APIRouter

from stockflow.api.routes import dashboard, documents, health, inventory, products, warehouses

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(warehouses.router)
api_router.include_router(products.router)
api_router.include_router(inventory.router)
api_router.include_router(documents.receipts)
api_router.include_router(documents.deliveries)
api_router.include_router(documents.transfers)
api_router.include_router(documents.adjustments)
api_router.include_router(dashboard.router)
