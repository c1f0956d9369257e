"""
Concurrency tests: two invoices racing for the same stock.

Uses a file-backed SQLite database so each thread gets its own connection.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from bazar import create_app
from bazar.errors import InsufficientStockError
from bazar.extensions import db
from bazar.models import Invoice, Product, StockMovement
from bazar.services import client_service, invoice_service, product_service


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
        'JWT_SECRET_KEY': 'test-jwt-secret-0123456789abcdef0123456789',
        'BCRYPT_ROUNDS': 4,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def test_racing_invoices_never_oversell(file_app):
    buyer = client_service.create_client({
        "tax_id": "1012345678",
        "first_name": "María",
        "last_name": "López",
        "phone": "+57 300 555 0303",
        "address": {"street": "Calle 80", "city": "Bogotá", "state": "Cundinamarca"},
    })
    product = product_service.create_product({
        "name": "Arroz 500g", "category": "Alimentos", "selling_price_cents": 10000, "current_stock": 10,
    })
    client_id, product_id = buyer.id, product.id
    db.session.remove()

    barrier = threading.Barrier(2)
    outcomes = []

    def _worker():
        with file_app.app_context():
            barrier.wait()
            try:
                invoice_service.create_invoice(
                    client_id=client_id,
                    items=[{"product_id": product_id, "quantity": 6}],
                )
                outcomes.append("ok")
            except (InsufficientStockError, OperationalError, StaleDataError):
                outcomes.append("rejected")
            finally:
                db.session.remove()

    threads = [threading.Thread(target=_worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(outcomes) == 2
    sold = outcomes.count("ok")
    assert sold <= 1

    stock = db.session.get(Product, product_id).current_stock
    assert stock == 10 - 6 * sold
    assert db.session.query(Invoice).count() == sold

    movements = (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.asc())
        .all()
    )
    assert movements[-1].new_stock == stock
    assert len(movements) == 1 + sold
