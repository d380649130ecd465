from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlmodel import Session

from stockflow.api.deps import get_actor_id, get_db, pagination_params
from stockflow.models.base import DocumentStatus, DocumentType
from stockflow.schemas.common import ErrorResponse
from stockflow.schemas.documents import (
    AdjustmentCreate,
    AdjustmentRead,
    AdjustmentUpdate,
    DeliveryCreate,
    DeliveryRead,
    DeliveryUpdate,
    ReceiptCreate,
    ReceiptRead,
    ReceiptUpdate,
    TransferCreate,
    TransferRead,
    TransferUpdate,
)
from stockflow.services import workflow


def serialize_document(db: Session, kind: workflow.DocumentKind, document: Any, read_model: type[BaseModel]) -> Any:
    items = workflow.list_items(db, kind, document)
    return read_model.model_validate(
        {**document.model_dump(), "items": [item.model_dump() for item in items]}
    )


def build_document_router(
    document_type: DocumentType,
    prefix: str,
    create_model: type[BaseModel],
    update_model: type[BaseModel],
    read_model: type[BaseModel],
) -> APIRouter:
    kind = workflow.get_kind(document_type)
    label = kind.label
    router = APIRouter(
        prefix=prefix,
        tags=[prefix.strip("/")],
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    )

    @router.post("", response_model=read_model, status_code=status.HTTP_201_CREATED, name=f"create_{label}")
    def create(
        payload: create_model,  # type: ignore[valid-type]
        db: Session = Depends(get_db),
        actor_id: str = Depends(get_actor_id),
    ) -> Any:
        document = workflow.create_document(db, kind, payload, actor_id)
        db.commit()
        return serialize_document(db, kind, document, read_model)

    @router.get("", response_model=list[read_model], name=f"list_{label}s")  # type: ignore[valid-type]
    def list_(
        status_filter: DocumentStatus | None = None,
        pagination: tuple[int, int] = Depends(pagination_params),
        db: Session = Depends(get_db),
    ) -> Any:
        limit, offset = pagination
        documents = workflow.list_documents(db, kind, status=status_filter, limit=limit, offset=offset)
        return [serialize_document(db, kind, document, read_model) for document in documents]

    @router.get("/{document_id}", response_model=read_model, name=f"get_{label}")
    def get(document_id: int, db: Session = Depends(get_db)) -> Any:
        document = workflow.get_document(db, kind, document_id)
        return serialize_document(db, kind, document, read_model)

    @router.patch("/{document_id}", response_model=read_model, name=f"update_{label}")
    def update(
        document_id: int,
        payload: update_model,  # type: ignore[valid-type]
        db: Session = Depends(get_db),
        actor_id: str = Depends(get_actor_id),
    ) -> Any:
        document = workflow.update_document(db, kind, document_id, payload, actor_id)
        db.commit()
        return serialize_document(db, kind, document, read_model)

    @router.post("/{document_id}/validate", response_model=read_model, name=f"validate_{label}")
    def validate(
        document_id: int,
        db: Session = Depends(get_db),
        actor_id: str = Depends(get_actor_id),
    ) -> Any:
        workflow.validate_document(db, kind, document_id, actor_id)
        db.commit()
        return serialize_document(db, kind, workflow.get_document(db, kind, document_id), read_model)

    @router.post("/{document_id}/cancel", response_model=read_model, name=f"cancel_{label}")
    def cancel(
        document_id: int,
        db: Session = Depends(get_db),
        actor_id: str = Depends(get_actor_id),
    ) -> Any:
        document = workflow.cancel_document(db, kind, document_id, actor_id)
        db.commit()
        return serialize_document(db, kind, document, read_model)

    return router


receipts = build_document_router(DocumentType.RECEIPT, "/receipts", ReceiptCreate, ReceiptUpdate, ReceiptRead)
deliveries = build_document_router(DocumentType.DELIVERY, "/deliveries", DeliveryCreate, DeliveryUpdate, DeliveryRead)
transfers = build_document_router(DocumentType.TRANSFER, "/transfers", TransferCreate, TransferUpdate, TransferRead)
adjustments = build_document_router(
    DocumentType.ADJUSTMENT, "/adjustments", AdjustmentCreate, AdjustmentUpdate, AdjustmentRead
)
