from fastapi import APIRouter, Depends
from sqlmodel import Session

from stockflow.api.deps import get_db
from stockflow.services.dashboard import (
    DashboardKPIs,
    DashboardOperations,
    ProductStatus,
    get_kpis,
    get_operations,
    product_stock_status,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/kpis", response_model=DashboardKPIs)
def read_kpis(db: Session = Depends(get_db)) -> DashboardKPIs:
    return get_kpis(db)


@router.get("/stock-status", response_model=list[ProductStatus])
def read_stock_status(db: Session = Depends(get_db)) -> list[ProductStatus]:
    return product_stock_status(db)


@router.get("/operations", response_model=DashboardOperations)
def read_operations(db: Session = Depends(get_db)) -> DashboardOperations:
    return get_operations(db)
