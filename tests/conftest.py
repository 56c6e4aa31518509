from datetime import date, datetime, timedelta

import pytest

import db
import user_database
from medicine_utils import MedicineRecord


@pytest.fixture(scope="session")
def today() -> date:
    """Fixed reference date so classification results never depend on the wall clock."""
    return date(2025, 6, 15)


def make_record(today, name="Paracetamol", days=100, quantity=50, **kwargs):
    """Build a record expiring ``days`` after ``today`` (None for no expiry date)."""
    kwargs.setdefault("id", name.lower().replace(" ", "-"))
    return MedicineRecord(
        name=name,
        quantity=quantity,
        expiry_date=None if days is None else today + timedelta(days=days),
        **kwargs,
    )


@pytest.fixture
def record(today):
    def _make(name="Paracetamol", days=100, quantity=50, **kwargs):
        return make_record(today, name=name, days=days, quantity=quantity, **kwargs)
    return _make


@pytest.fixture
def scenario(today):
    """
    A: expired and out of stock.
    B: expiring in 10 days and low on stock.
    C: safe and well stocked.
    """
    return [
        make_record(today, "A", days=-5, quantity=0, id="a", batch_number="BA-1",
                    created_at=datetime(2025, 1, 1)),
        make_record(today, "B", days=10, quantity=5, min_stock=10, id="b", batch_number="BB-2",
                    created_at=datetime(2025, 3, 1)),
        make_record(today, "C", days=400, quantity=50, id="c", batch_number="BC-3",
                    created_at=datetime(2025, 2, 1)),
    ]


@pytest.fixture
def store(tmp_path):
    """A fresh file-backed SQLite record store per test."""
    db.configure(f"sqlite:///{tmp_path / 'pharmacy_test.db'}")
    db.init_db()
    yield db
    db.engine.dispose()


@pytest.fixture
def users_db(tmp_path, monkeypatch):
    monkeypatch.setattr(user_database, "DB_PATH", str(tmp_path / "users_test.db"))
    user_database.init_user_db()
    return user_database
