from datetime import date, timedelta

import pytest

from stockflow.core.errors import NotFoundError
from stockflow.models.base import DocumentStatus, DocumentType, MovementType, Product
from stockflow.schemas.documents import DeliveryCreate, ReceiptCreate, TransferCreate
from stockflow.services import dashboard, ledger, workflow

from .conftest import ACTOR


@pytest.mark.parametrize(
    ("total", "reorder_level", "expected"),
    [
        (0, None, dashboard.OUT_OF_STOCK),
        (0, 10, dashboard.OUT_OF_STOCK),
        (5, 5, dashboard.LOW_STOCK),
        (4, 5, dashboard.LOW_STOCK),
        (6, 5, dashboard.IN_STOCK),
        (1, None, dashboard.IN_STOCK),
    ],
)
def test_classify(total, reorder_level, expected) -> None:
    assert dashboard.classify(total, reorder_level) == expected


def _stock(session, product, warehouse, quantity) -> None:
    ledger.apply_movement(
        session,
        product_id=product.id,
        warehouse_id=warehouse.id,
        quantity=quantity,
        document_id=0,
        document_type=DocumentType.RECEIPT,
        movement_type=MovementType.IN,
        actor_id=ACTOR,
    )


def test_kpis_count_products_and_open_documents(session, product, warehouses) -> None:
    main, overflow = warehouses
    washer = Product(sku="SKU-002", name="Washer", reorder_level=2)
    nut = Product(sku="SKU-003", name="Nut")
    session.add_all([washer, nut])
    session.commit()

    _stock(session, product, main, 3)
    _stock(session, product, overflow, 1)
    _stock(session, washer, main, 40)

    delivery = DeliveryCreate(customer="Globex", warehouse_id=main.id, items=[{"product_id": washer.id, "quantity": 1}])
    workflow.create_document(session, workflow.get_kind(DocumentType.DELIVERY), delivery, ACTOR)
    transfer = TransferCreate(
        from_warehouse_id=main.id,
        to_warehouse_id=overflow.id,
        status=DocumentStatus.READY,
        items=[{"product_id": washer.id, "quantity": 1}],
    )
    workflow.create_document(session, workflow.get_kind(DocumentType.TRANSFER), transfer, ACTOR)
    session.commit()

    kpis = dashboard.get_kpis(session)

    assert kpis.total_products == 3
    assert kpis.low_stock_items == 1
    assert kpis.out_of_stock_items == 1
    assert kpis.pending_receipts == 0
    assert kpis.pending_deliveries == 1
    assert kpis.scheduled_transfers == 1
    assert kpis.pending_adjustments == 0

    statuses = {item.sku: item for item in dashboard.product_stock_status(session)}
    assert statuses["SKU-001"].total_quantity == 4
    assert statuses["SKU-003"].stock_status == dashboard.OUT_OF_STOCK


def test_product_summary_spans_warehouses(session, product, warehouses) -> None:
    main, overflow = warehouses
    _stock(session, product, main, 7)
    _stock(session, product, overflow, 2)
    session.commit()

    summary = dashboard.product_summary(session, product.id)

    assert summary.warehouse_count == 2
    assert summary.total_quantity == 9
    assert (summary.min_quantity, summary.max_quantity) == (2, 7)
    assert summary.stock_status == dashboard.IN_STOCK
    assert {entry.warehouse_name: entry.quantity for entry in summary.warehouses} == {"Main": 7, "Overflow": 2}


def test_warehouse_summary_classifies_each_row(session, product, warehouses) -> None:
    main, _ = warehouses
    washer = Product(sku="SKU-002", name="Washer")
    session.add(washer)
    session.commit()
    _stock(session, product, main, 3)
    _stock(session, washer, main, 0)
    session.commit()

    summary = dashboard.warehouse_summary(session, main.id)

    assert summary.total_products == 2
    assert summary.products_in_stock == 1
    assert summary.products_low_stock == 1
    assert summary.products_out_of_stock == 1
    assert summary.total_quantity == 3


def test_summaries_reject_unknown_ids(session) -> None:
    with pytest.raises(NotFoundError):
        dashboard.product_summary(session, 404)
    with pytest.raises(NotFoundError):
        dashboard.warehouse_summary(session, 404)


def test_operations_split_open_documents_by_schedule(session, product, warehouses) -> None:
    main, _ = warehouses
    today = date(2024, 5, 10)
    receipts = workflow.get_kind(DocumentType.RECEIPT)
    deliveries = workflow.get_kind(DocumentType.DELIVERY)
    line = [{"product_id": product.id, "quantity": 1}]

    def receipt(status, scheduled):
        payload = ReceiptCreate(
            supplier="Acme", warehouse_id=main.id, status=status, scheduled_date=scheduled, items=line
        )
        return workflow.create_document(session, receipts, payload, ACTOR)

    unscheduled = receipt(DocumentStatus.READY, None)
    upcoming = receipt(DocumentStatus.DRAFT, today + timedelta(days=1))
    late = receipt(DocumentStatus.WAITING, today - timedelta(days=1))
    receipt(DocumentStatus.DONE, today - timedelta(days=3))
    canceled = receipt(DocumentStatus.DRAFT, today - timedelta(days=2))
    workflow.cancel_document(session, receipts, canceled.id, ACTOR)
    delivery = DeliveryCreate(
        customer="Globex",
        warehouse_id=main.id,
        status=DocumentStatus.WAITING,
        scheduled_date=today,
        items=line,
    )
    workflow.create_document(session, deliveries, delivery, ACTOR)
    session.commit()

    operations = dashboard.get_operations(session, today=today)

    queue = operations.receipts
    assert (queue.open, queue.late, queue.upcoming, queue.waiting) == (3, 1, 1, 1)
    assert [item.id for item in queue.documents] == [late.id, upcoming.id, unscheduled.id]
    assert queue.documents[0].counterparty == "Acme"
    assert queue.documents[0].product_names == ["Steel bolt"]
    assert operations.top_products == ["Steel bolt"] * 3

    queue = operations.deliveries
    assert (queue.open, queue.late, queue.upcoming, queue.waiting) == (1, 0, 0, 1)
    assert queue.documents[0].counterparty == "Globex"
