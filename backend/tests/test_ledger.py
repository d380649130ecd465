import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from stockflow.core.errors import InvalidQuantityError, NotFoundError, StorageConflictError
from stockflow.crud import stock as stock_crud
from stockflow.models.base import DocumentType, MoveHistory, MovementType, ProductStock
from stockflow.schemas.inventory import HistoryFilters
from stockflow.services import ledger

from .conftest import ACTOR


def _move(session, product, warehouse, quantity, movement_type, document_id=1, document_type=DocumentType.RECEIPT):
    return ledger.apply_movement(
        session,
        product_id=product.id,
        warehouse_id=warehouse.id,
        quantity=quantity,
        document_id=document_id,
        document_type=document_type,
        movement_type=movement_type,
        actor_id=ACTOR,
    )


def _entries(session: Session) -> list[MoveHistory]:
    return list(session.exec(select(MoveHistory).order_by(MoveHistory.id)).all())


def test_first_receipt_creates_stock_row(session, product, warehouses) -> None:
    main, _ = warehouses
    assert session.get(ProductStock, (product.id, main.id)) is None

    entry = _move(session, product, main, 10, MovementType.IN)
    session.commit()

    assert ledger.get_quantity(session, product.id, main.id) == 10
    assert (entry.quantity_before, entry.quantity_after, entry.quantity) == (0, 10, 10)
    assert entry.movement_type == MovementType.IN
    assert entry.user_id == ACTOR
    assert entry.timestamp.tzinfo is not None


def test_outgoing_movement_clamps_at_zero_but_logs_requested_delta(session, product, warehouses) -> None:
    main, _ = warehouses
    _move(session, product, main, 5, MovementType.IN)

    entry = _move(session, product, main, 8, MovementType.OUT, document_id=2, document_type=DocumentType.DELIVERY)
    session.commit()

    assert ledger.get_quantity(session, product.id, main.id) == 0
    assert (entry.quantity_before, entry.quantity_after, entry.quantity) == (5, 0, -8)
    assert entry.quantity_after - entry.quantity_before != entry.quantity


def test_random_sequence_never_goes_negative_and_ledger_tracks_stock(session, product, warehouses) -> None:
    main, _ = warehouses
    rng = random.Random(7)
    for step in range(60):
        movement_type = rng.choice([MovementType.IN, MovementType.OUT])
        entry = _move(session, product, main, rng.randint(0, 15), movement_type, document_id=step)
        on_hand = ledger.get_quantity(session, product.id, main.id)
        assert on_hand >= 0
        assert entry.quantity_after == on_hand
    session.commit()

    entries = _entries(session)
    for previous, current in zip(entries, entries[1:]):
        assert current.quantity_before == previous.quantity_after
    assert entries[-1].quantity_after == ledger.get_quantity(session, product.id, main.id)


@pytest.mark.parametrize("quantity", [-1, 2.5, True, "3", None])
def test_invalid_quantity_is_rejected_before_any_write(session, product, warehouses, quantity) -> None:
    main, _ = warehouses
    with pytest.raises(InvalidQuantityError):
        _move(session, product, main, quantity, MovementType.IN)
    assert _entries(session) == []
    assert session.get(ProductStock, (product.id, main.id)) is None


def test_unknown_product_or_warehouse(session, product, warehouses) -> None:
    main, _ = warehouses
    with pytest.raises(NotFoundError):
        ledger.apply_movement(
            session,
            product_id=999,
            warehouse_id=main.id,
            quantity=1,
            document_id=1,
            document_type=DocumentType.RECEIPT,
            movement_type=MovementType.IN,
            actor_id=ACTOR,
        )
    with pytest.raises(NotFoundError):
        ledger.apply_movement(
            session,
            product_id=product.id,
            warehouse_id=999,
            quantity=1,
            document_id=1,
            document_type=DocumentType.RECEIPT,
            movement_type=MovementType.IN,
            actor_id=ACTOR,
        )
    assert _entries(session) == []


def test_failed_ledger_write_rolls_back_quantity(session, product, warehouses, monkeypatch) -> None:
    main, overflow = warehouses
    _move(session, product, main, 4, MovementType.IN)
    session.commit()

    def broken_append(db, entry):
        raise RuntimeError("disk full")

    monkeypatch.setattr(stock_crud, "append_movement", broken_append)
    with pytest.raises(RuntimeError):
        _move(session, product, main, 3, MovementType.IN, document_id=2)
    with pytest.raises(RuntimeError):
        _move(session, product, overflow, 3, MovementType.IN, document_id=3)
    session.commit()

    assert ledger.get_quantity(session, product.id, main.id) == 4
    assert session.exec(
        select(ProductStock).where(ProductStock.warehouse_id == overflow.id)
    ).first() is None
    assert len(_entries(session)) == 1


def test_store_failure_surfaces_as_storage_conflict(session, product, warehouses, monkeypatch) -> None:
    main, _ = warehouses

    def locked(db, entry):
        raise OperationalError("INSERT INTO move_history", {}, Exception("database is locked"))

    monkeypatch.setattr(stock_crud, "append_movement", locked)
    with pytest.raises(StorageConflictError):
        _move(session, product, main, 1, MovementType.IN)
    assert ledger.get_quantity(session, product.id, main.id) == 0


def test_concurrent_movements_on_one_key_do_not_lose_updates(db_engine, session, product, warehouses) -> None:
    main, _ = warehouses
    workers = 8

    def receive(document_id: int) -> None:
        with Session(db_engine) as worker_session:
            _move(worker_session, product, main, 1, MovementType.IN, document_id=document_id)
            worker_session.commit()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        for result in [pool.submit(receive, number) for number in range(workers)]:
            result.result()

    assert ledger.get_quantity(session, product.id, main.id) == workers
    befores = sorted(entry.quantity_before for entry in _entries(session))
    assert befores == list(range(workers))


def test_history_is_filtered_and_most_recent_first(session, product, warehouses) -> None:
    main, overflow = warehouses
    _move(session, product, main, 10, MovementType.IN, document_id=1)
    _move(session, product, overflow, 4, MovementType.IN, document_id=2)
    _move(session, product, main, 3, MovementType.OUT, document_id=3, document_type=DocumentType.DELIVERY)
    session.commit()

    history = ledger.get_history(session)
    assert [entry.document_id for entry in history] == [3, 2, 1]

    main_only = ledger.get_history(session, HistoryFilters(warehouse_id=main.id))
    assert [entry.document_id for entry in main_only] == [3, 1]

    deliveries = ledger.get_history(session, HistoryFilters(document_type=DocumentType.DELIVERY))
    assert [entry.quantity for entry in deliveries] == [-3]

    assert len(ledger.get_history(session, limit=2)) == 2

    since = ledger.get_history(session, HistoryFilters(date_from=datetime(2000, 1, 1)))
    assert HistoryFilters(date_from=datetime(2000, 1, 1)).date_from.tzinfo == timezone.utc
    assert len(since) == 3
    assert ledger.get_history(session, HistoryFilters(date_to=datetime(2000, 1, 1))) == []
