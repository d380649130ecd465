from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from stockflow.api.deps import get_db
from stockflow.db.session import create_db_engine
from stockflow.main import create_application
from stockflow.models.base import Product, Warehouse

ACTOR = "u1"


@pytest.fixture(name="db_engine")
def db_engine_fixture(tmp_path) -> Generator[Any, None, None]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(db_engine) -> Generator[Session, None, None]:
    with Session(db_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture(name="warehouses")
def warehouses_fixture(session: Session) -> tuple[Warehouse, Warehouse]:
    main = Warehouse(name="Main", location="Dock A")
    overflow = Warehouse(name="Overflow", location="Dock B")
    session.add_all([main, overflow])
    session.commit()
    return main, overflow


@pytest.fixture(name="product")
def product_fixture(session: Session) -> Product:
    product = Product(sku="SKU-001", name="Steel bolt", category="hardware", reorder_level=5)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(name="client")
def client_fixture(db_engine):  # type: ignore[annotations]
    app = create_application(create_schema=False)

    def get_db_override() -> Generator[Session, None, None]:
        with Session(db_engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    app.dependency_overrides[get_db] = get_db_override

    with TestClient(app) as client:
        client.headers.update({"X-Actor-Id": ACTOR})
        yield client

    app.dependency_overrides.clear()
