import pytest

import stores
from api import book_fields
from app import create_app
from guard import issue_token
from models import db

BOOK_PAYLOAD = {
    "title": "Мастер и Маргарита",
    "author": "Михаил Булгаков",
    "category": "Классика",
    "year": 1967,
    "price": 500,
    "rentPrice": {"2weeks": 50, "1month": 90, "3months": 200},
    "description": "Роман",
    "imageUrl": "https://example.com/mm.jpg",
    "isbn": "978-5-17-090630-7",
    "available": True,
}


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'store.db'}",
        "RENTAL_SWEEP_ENABLED": False,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def make_user(app):
    """Создает пользователя, возвращает (id, заголовки с токеном)."""
    counter = {"n": 0}

    def _make(email=None, is_admin=False, password="secret123"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        with app.app_context():
            u = stores.create_user(email, password, f"User {counter['n']}", is_admin=is_admin)
            return u.id, {"Authorization": f"Bearer {issue_token(u)}"}

    return _make


@pytest.fixture
def admin_headers(make_user):
    return make_user(email="admin@example.com", is_admin=True)[1]


@pytest.fixture
def make_book(app):
    def _make(**overrides):
        payload = dict(BOOK_PAYLOAD, **overrides)
        with app.app_context():
            b = stores.create_book(book_fields(payload))
            return b.id

    return _make
