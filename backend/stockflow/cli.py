"""Command line interface for the stock ledger service."""

from __future__ import annotations

from typing import Optional

import typer
import uvicorn
from sqlmodel import Session

from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .db.session import engine, init_db
from .models.base import DocumentType
from .schemas.inventory import HistoryFilters
from .services import ledger

app = typer.Typer(help="Run and inspect the Stockflow inventory service.")


def _print_header(title: str) -> None:
    typer.secho(title, bold=True, fg=typer.colors.CYAN)


def _resolve_settings() -> Settings:
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db()
    return settings


@app.command()
def run(
    host: Optional[str] = typer.Option(None, help="Hostname to bind"),
    port: Optional[int] = typer.Option(None, help="Port to expose"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
    log_level: Optional[str] = typer.Option(None, help="Uvicorn log level"),
) -> None:
    """Start the API using Uvicorn."""

    settings = _resolve_settings()

    uvicorn.run(
        "stockflow.main:create_application",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command("init-db")
def init_db_cmd() -> None:
    """Create the database tables."""

    settings = _resolve_settings()
    typer.echo(f"Database ready at {settings.database_url}")


@app.command()
def stock(
    product_id: int = typer.Argument(..., help="Product id"),
    warehouse_id: int = typer.Argument(..., help="Warehouse id"),
) -> None:
    """Print the on-hand quantity of a product in a warehouse."""

    _resolve_settings()
    with Session(engine) as session:
        quantity = ledger.get_quantity(session, product_id, warehouse_id)
    typer.echo(f"product={product_id} warehouse={warehouse_id} quantity={quantity}")


@app.command()
def history(
    product_id: Optional[int] = typer.Option(None, "--product", help="Only this product"),
    warehouse_id: Optional[int] = typer.Option(None, "--warehouse", help="Only this warehouse"),
    document_type: Optional[DocumentType] = typer.Option(None, "--document-type", help="Only this document type"),
    limit: int = typer.Option(20, help="Maximum number of entries"),
) -> None:
    """Show the most recent ledger entries."""

    _resolve_settings()
    filters = HistoryFilters(product_id=product_id, warehouse_id=warehouse_id, document_type=document_type)
    with Session(engine) as session:
        entries = ledger.get_history(session, filters, limit)
    if not entries:
        typer.echo("No movements recorded.")
        return
    _print_header("Recent movements")
    for entry in entries:
        typer.echo(
            f"- {entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.document_type.value}#{entry.document_id} "
            f"product={entry.product_id} warehouse={entry.warehouse_id} "
            f"{entry.quantity:+d} ({entry.quantity_before} -> {entry.quantity_after}) by {entry.user_id}"
        )


def main() -> None:
    """Entry-point for console scripts."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
