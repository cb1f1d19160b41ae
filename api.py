from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

import stores
from engine import OrderKind, create_order
from errors import InvalidArgument
from guard import admin_required, issue_token
from models import DurationTier

api_bp = Blueprint("api", __name__)


# --- Разбор тела запроса ---
def _json_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidArgument("Ожидается JSON-объект в теле запроса")
    return body


def _text(body, key, required=True):
    value = body.get(key)
    if value is None or value == "":
        if required:
            raise InvalidArgument(f"Поле {key} обязательно")
        return None
    if not isinstance(value, str):
        raise InvalidArgument(f"Поле {key} должно быть строкой")
    value = value.strip()
    if required and not value:
        raise InvalidArgument(f"Поле {key} обязательно")
    return value


MAX_PRICE = Decimal("1e8")  # Numeric(10, 2)
INT_LIMIT = 2 ** 31         # Integer-колонки


def _int(value, key):
    number = None
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str):
        try:
            number = int(value)
        except ValueError:
            pass
    if number is None or not -INT_LIMIT < number < INT_LIMIT:
        raise InvalidArgument(f"Поле {key} должно быть целым числом")
    return number


def _price(value, key):
    if isinstance(value, bool) or value is None:
        raise InvalidArgument(f"Поле {key} должно быть числом")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidArgument(f"Поле {key} должно быть числом")
    if not amount.is_finite() or amount < 0:
        raise InvalidArgument(f"Поле {key} должно быть неотрицательным числом")
    # колонка хранит копейки и не больше 8 знаков до запятой
    if amount >= MAX_PRICE or amount.as_tuple().exponent < -2:
        raise InvalidArgument(f"Поле {key}: не больше 99999999.99 и не больше двух знаков после запятой")
    return amount


def book_fields(body):
    """Поля книги из JSON; цены аренды приходят вложенным словарем rentPrice."""
    rent = body.get("rentPrice")
    if not isinstance(rent, dict):
        raise InvalidArgument("Поле rentPrice обязательно")

    available = body.get("available", True)
    if not isinstance(available, bool):
        raise InvalidArgument("Поле available должно быть true или false")

    fields = {
        "title": _text(body, "title"),
        "author": _text(body, "author"),
        "category": _text(body, "category"),
        "year": _int(body.get("year"), "year"),
        "price": _price(body.get("price"), "price"),
        "description": _text(body, "description", required=False) or "",
        "image_url": _text(body, "imageUrl", required=False),
        "isbn": _text(body, "isbn", required=False),
        "available": available,
    }
    for tier in DurationTier:
        fields[f"rent_price_{tier.value}"] = _price(rent.get(tier.value), f"rentPrice.{tier.value}")
    return fields


# --- AUTH ---
@api_bp.route("/auth/register", methods=["POST"])
def register():
    body = _json_body()
    email = _text(body, "email")
    password = body.get("password")
    if not isinstance(password, str) or not password:
        raise InvalidArgument("Поле password обязательно")
    name = _text(body, "name")

    u = stores.create_user(email, password, name, is_admin=body.get("isAdmin") is True)
    current_app.logger.info("Registered user %s (admin=%s)", u.id, u.is_admin)
    return jsonify({"token": issue_token(u), "user": u.to_public()}), 201


@api_bp.route("/auth/login", methods=["POST"])
def login():
    body = _json_body()
    email = body.get("email")
    password = body.get("password")
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidArgument("Неверный email или пароль")

    u = stores.authenticate(email.strip(), password)
    return jsonify({"token": issue_token(u), "user": u.to_public()})


@api_bp.route("/auth/me")
@login_required
def me():
    u = stores.get_user(current_user.id)
    return jsonify({"user": u.to_public()})


# --- BOOKS ---
def _year_filter(value):
    try:
        return _int(value, "year")
    except InvalidArgument:
        # нечисловой год просто не фильтрует
        return None


@api_bp.route("/books")
def list_books():
    year = request.args.get("year", "").strip()
    available = request.args.get("available", "").strip().lower()

    books = stores.list_books(
        search=request.args.get("search", "").strip(),
        category=request.args.get("category", "").strip(),
        author=request.args.get("author", "").strip(),
        year=_year_filter(year) if year else None,
        available={"true": True, "false": False}.get(available),
    )
    return jsonify({"books": [b.to_dict() for b in books]})


@api_bp.route("/books/filters")
def book_filters():
    return jsonify(stores.book_facets())


@api_bp.route("/books/<int:book_id>")
def get_book(book_id):
    return jsonify({"book": stores.get_book(book_id).to_dict()})


@api_bp.route("/books", methods=["POST"])
@login_required
def add_book():
    admin_required()
    b = stores.create_book(book_fields(_json_body()))
    current_app.logger.info("Book %s created by %s", b.id, current_user.id)
    return jsonify({"book": b.to_dict()}), 201


@api_bp.route("/books/<int:book_id>", methods=["PUT"])
@login_required
def update_book(book_id):
    admin_required()
    b = stores.replace_book(book_id, book_fields(_json_body()))
    current_app.logger.info("Book %s updated by %s", b.id, current_user.id)
    return jsonify({"book": b.to_dict()})


@api_bp.route("/books/<int:book_id>", methods=["DELETE"])
@login_required
def delete_book(book_id):
    admin_required()
    stores.delete_book(book_id)
    current_app.logger.info("Book %s deleted by %s", book_id, current_user.id)
    return jsonify({"message": "Книга успешно удалена"})


# --- ORDERS ---
@api_bp.route("/orders", methods=["POST"])
@login_required
def add_order():
    body = _json_body()
    book_id = _int(body.get("bookId"), "bookId")
    kind = OrderKind.parse(body.get("type"), body.get("duration"))

    o = create_order(current_user.id, book_id, kind)
    return jsonify({"order": o.to_dict(), "message": "Заказ успешно создан"}), 201


@api_bp.route("/orders")
@login_required
def my_orders():
    # только свои заказы
    orders = stores.orders_for_user(current_user.id)
    return jsonify({"orders": [o.to_dict(with_book=True) for o in orders]})


# --- ADMIN ---
@api_bp.route("/admin/stats")
@login_required
def admin_stats():
    admin_required()
    return jsonify(stores.store_stats())


@api_bp.route("/admin/rentals")
@login_required
def admin_rentals():
    admin_required()
    return jsonify({"orders": [o.to_dict(with_book=True) for o in stores.rental_orders()]})
