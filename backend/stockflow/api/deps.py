from typing import Generator, Optional

from fastapi import Header
from sqlmodel import Session

from stockflow.core.config import get_settings
from stockflow.db.session import session_scope


def get_db() -> Generator[Session, None, None]:
    with session_scope() as session:
        yield session


def get_actor_id(x_actor_id: str = Header(..., min_length=1, description="Opaque id of the calling user")) -> str:
    return x_actor_id


def pagination_params(limit: Optional[int] = None, offset: int = 0) -> tuple[int, int]:
    settings = get_settings()
    if limit is None:
        limit = settings.default_page_size
    if limit > settings.max_page_size:
        limit = settings.max_page_size
    return limit, max(offset, 0)
