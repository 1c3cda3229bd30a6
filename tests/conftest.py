import pytest

from src.database import db, init_db, seed_demo_data


@pytest.fixture
def database(tmp_path, monkeypatch):
    """Empty schema in a throwaway sqlite file."""
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "smartburger.db")
    init_db()
    return db


@pytest.fixture
def seeded(database):
    """The demo menu: 4 categories, 13 ingredients, 10 products, 1 promotion."""
    seed_demo_data()
    return database
