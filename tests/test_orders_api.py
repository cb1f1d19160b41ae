from datetime import datetime, timedelta

import pytest

from models import Book, Order, db


def _order(client, headers, **body):
    return client.post("/api/orders", json=body, headers=headers)


def test_rent_one_month_scenario(client, make_user, make_book, app):
    _, headers = make_user()
    book_id = make_book()

    resp = _order(client, headers, bookId=book_id, type="rent", duration="1month")

    assert resp.status_code == 201
    data = resp.get_json()
    assert data["message"] == "Заказ успешно создан"
    order = data["order"]
    assert order["totalPrice"] == 90
    assert order["status"] == "active"
    assert order["type"] == "rent"
    assert order["duration"] == "1month"
    assert order["bookId"] == book_id
    assert "book" not in order
    created = datetime.fromisoformat(order["createdAt"])
    assert datetime.fromisoformat(order["expiresAt"]) - created == timedelta(days=30)

    with app.app_context():
        assert db.session.get(Book, book_id).available is False

    again = _order(client, headers, bookId=book_id, type="purchase")
    assert again.status_code == 400
    assert again.get_json() == {"message": "Книга недоступна"}


def test_purchase(client, make_user, make_book):
    _, headers = make_user()
    book_id = make_book()

    order = _order(client, headers, bookId=book_id, type="purchase", duration="2weeks").get_json()["order"]

    assert order["totalPrice"] == 500
    assert order["expiresAt"] is None
    assert order["duration"] is None
    assert client.get(f"/api/books/{book_id}").get_json()["book"]["available"] is True


def test_book_id_as_string(client, make_user, make_book):
    _, headers = make_user()
    book_id = make_book()
    assert _order(client, headers, bookId=str(book_id), type="purchase").status_code == 201


@pytest.mark.parametrize("body,message", [
    ({"type": "rent", "duration": "1year"}, "Неверный срок аренды"),
    ({"type": "rent"}, "Неверный срок аренды"),
    ({"type": "lease", "duration": "2weeks"}, "Неверный тип заказа"),
])
def test_invalid_order_arguments(client, make_user, make_book, app, body, message):
    _, headers = make_user()
    book_id = make_book()

    resp = _order(client, headers, bookId=book_id, **body)

    assert resp.status_code == 400
    assert resp.get_json() == {"message": message}
    with app.app_context():
        assert Order.query.count() == 0
        assert db.session.get(Book, book_id).available is True


@pytest.mark.parametrize("book_id", [None, "²", "abc", True, 10 ** 20])
def test_bad_book_id(client, make_user, book_id):
    _, headers = make_user()
    resp = _order(client, headers, bookId=book_id, type="purchase")
    assert resp.status_code == 400
    assert resp.get_json() == {"message": "Поле bookId должно быть целым числом"}


def test_unknown_book(client, make_user):
    _, headers = make_user()
    resp = _order(client, headers, bookId=9999, type="purchase")
    assert resp.status_code == 404
    assert resp.get_json() == {"message": "Книга не найдена"}


def test_orders_require_token(client, make_book):
    book_id = make_book()
    assert client.post("/api/orders", json={"bookId": book_id, "type": "purchase"}).status_code == 401
    assert client.get("/api/orders").status_code == 401


def test_list_own_orders_only(client, make_user, make_book):
    alice_id, alice = make_user()
    bob_id, bob = make_user()
    books = [make_book(title=f"Книга {i}") for i in range(4)]

    _order(client, alice, bookId=books[0], type="purchase")
    _order(client, bob, bookId=books[1], type="rent", duration="2weeks")
    _order(client, alice, bookId=books[2], type="rent", duration="3months")
    _order(client, bob, bookId=books[3], type="purchase")

    alice_orders = client.get("/api/orders", headers=alice).get_json()["orders"]
    bob_orders = client.get("/api/orders", headers=bob).get_json()["orders"]

    assert {o["userId"] for o in alice_orders} == {alice_id}
    assert {o["userId"] for o in bob_orders} == {bob_id}
    assert [o["bookId"] for o in alice_orders] == [books[2], books[0]]
    assert alice_orders[0]["book"] == {
        "id": books[2],
        "title": "Книга 2",
        "author": "Михаил Булгаков",
        "imageUrl": "https://example.com/mm.jpg",
    }


def test_empty_order_list(client, make_user):
    _, headers = make_user()
    assert client.get("/api/orders", headers=headers).get_json() == {"orders": []}


def test_admin_stats_and_rentals(client, make_user, make_book, admin_headers):
    _, headers = make_user()
    rented = make_book(title="Аренда")
    bought = make_book(title="Покупка")
    _order(client, headers, bookId=rented, type="rent", duration="2weeks")
    _order(client, headers, bookId=bought, type="purchase")

    stats = client.get("/api/admin/stats", headers=admin_headers).get_json()
    assert stats == {"totalBooks": 2, "totalUsers": 2, "activeRentals": 1}

    rentals = client.get("/api/admin/rentals", headers=admin_headers).get_json()["orders"]
    assert [o["book"]["title"] for o in rentals] == ["Аренда"]


def test_admin_routes_forbidden_for_customers(client, make_user):
    _, headers = make_user()
    assert client.get("/api/admin/stats", headers=headers).status_code == 403
    assert client.get("/api/admin/rentals", headers=headers).status_code == 403
