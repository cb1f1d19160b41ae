"""
Доступ к данным: каталог книг, пользователи и заказы.

Функции здесь не проверяют права доступа, это делает guard.py
до того, как управление дойдет сюда.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload
from werkzeug.security import check_password_hash, generate_password_hash

from errors import Conflict, InvalidArgument, NotFound
from models import Book, Order, OrderStatus, OrderType, User, db, utcnow


BOOK_FIELDS = (
    "title", "author", "category", "year",
    "price", "rent_price_2weeks", "rent_price_1month", "rent_price_3months",
    "description", "image_url", "isbn", "available",
)


# --- Пользователи ---
def create_user(email, password, name, is_admin=False):
    u = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        is_admin=bool(is_admin),
    )
    db.session.add(u)
    try:
        db.session.commit()
    except IntegrityError:
        # уникальность email держит сама БД
        db.session.rollback()
        raise Conflict("Пользователь с таким email уже существует")
    return u


def authenticate(email, password):
    u = User.query.filter_by(email=email).first()
    if not u or not check_password_hash(u.password_hash, password):
        raise InvalidArgument("Неверный email или пароль")
    return u


def get_user(user_id):
    u = db.session.get(User, user_id)
    if u is None:
        raise NotFound("Пользователь не найден")
    return u


# --- Каталог ---
def get_book(book_id):
    b = db.session.get(Book, book_id)
    if b is None:
        raise NotFound("Книга не найдена")
    return b


def list_books(search="", category="", author="", year=None, available=None):
    q = Book.query

    if category:
        q = q.filter(Book.category == category)
    if author:
        q = q.filter(Book.author == author)
    if year is not None:
        q = q.filter(Book.year == year)
    if available is not None:
        q = q.filter(Book.available == available)

    books = q.order_by(Book.created_at.desc(), Book.id.desc()).all()

    # lower() в SQLite не знает кириллицу, поэтому поиск по тексту здесь
    if search:
        term = search.lower()
        books = [b for b in books if term in b.title.lower() or term in b.author.lower()]
    return books


def book_facets():
    categories = [x[0] for x in db.session.query(Book.category).distinct().order_by(Book.category).all()]
    authors = [x[0] for x in db.session.query(Book.author).distinct().order_by(Book.author).all()]
    years = [x[0] for x in db.session.query(Book.year).distinct().order_by(Book.year).all()]
    return {"categories": categories, "authors": authors, "years": years}


def create_book(fields):
    now = utcnow()
    b = Book(created_at=now, updated_at=now, **fields)
    db.session.add(b)
    db.session.commit()
    return b


def replace_book(book_id, fields):
    b = get_book(book_id)
    for name in BOOK_FIELDS:
        setattr(b, name, fields[name])
    b.updated_at = utcnow()
    db.session.commit()
    return b


def delete_book(book_id):
    b = get_book(book_id)
    if Order.query.filter_by(book_id=b.id).first() is not None:
        raise Conflict("Книгу нельзя удалить: по ней есть заказы")
    db.session.delete(b)
    db.session.commit()


# --- Заказы ---
def orders_for_user(user_id):
    return (
        Order.query.options(joinedload(Order.book))
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def rental_orders():
    return (
        Order.query.options(joinedload(Order.book))
        .filter(Order.type == OrderType.RENT.value)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def store_stats():
    active_rentals = Order.query.filter(
        Order.type == OrderType.RENT.value,
        Order.status == OrderStatus.ACTIVE.value,
    ).count()
    return {
        "totalBooks": Book.query.count(),
        "totalUsers": User.query.count(),
        "activeRentals": active_rentals,
    }
