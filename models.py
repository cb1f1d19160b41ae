import enum
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    # naive UTC, как хранится в DateTime-колонках
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value is not None else None


class OrderType(str, enum.Enum):
    PURCHASE = "purchase"
    RENT = "rent"


class DurationTier(str, enum.Enum):
    """Срок аренды: фиксированное число дней, не календарные месяцы."""

    TWO_WEEKS = "2weeks"
    ONE_MONTH = "1month"
    THREE_MONTHS = "3months"

    @property
    def days(self) -> int:
        return {"2weeks": 14, "1month": 30, "3months": 90}[self.value]


class OrderStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    orders = db.relationship("Order", backref="user", lazy=True)

    def to_public(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "isAdmin": self.is_admin,
        }


class Book(db.Model):
    __tablename__ = "books"

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(250), nullable=False)
    author = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    year = db.Column(db.Integer, nullable=False)

    price = db.Column(db.Numeric(10, 2), nullable=False)                 # покупка
    rent_price_2weeks = db.Column(db.Numeric(10, 2), nullable=False)     # 2 недели
    rent_price_1month = db.Column(db.Numeric(10, 2), nullable=False)     # 1 месяц
    rent_price_3months = db.Column(db.Numeric(10, 2), nullable=False)    # 3 месяца

    description = db.Column(db.Text, nullable=False, default="")
    image_url = db.Column(db.String(500), nullable=True)
    isbn = db.Column(db.String(32), nullable=True)

    available = db.Column(db.Boolean, nullable=False, default=True)  # можно ли заказать

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def rent_price(self, tier: DurationTier):
        return getattr(self, f"rent_price_{tier.value}")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "category": self.category,
            "year": self.year,
            "price": _money(self.price),
            "rentPrice": {tier.value: _money(self.rent_price(tier)) for tier in DurationTier},
            "description": self.description,
            "imageUrl": self.image_url,
            "available": self.available,
            "isbn": self.isbn,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Order(db.Model):
    """
    type:
      - purchase: duration и expires_at пустые
      - rent: duration одно из 2weeks/1month/3months, expires_at заполнен

    total_price фиксируется при создании и не пересчитывается,
    даже если цены книги потом поменяются.
    """
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("books.id"), nullable=False, index=True)

    type = db.Column(db.String(20), nullable=False)
    duration = db.Column(db.String(20), nullable=True)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.ACTIVE.value)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=True)

    book = db.relationship("Book", lazy=True)

    def to_dict(self, with_book=False):
        data = {
            "id": self.id,
            "userId": self.user_id,
            "bookId": self.book_id,
            "type": self.type,
            "duration": self.duration,
            "totalPrice": _money(self.total_price),
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "expiresAt": _iso(self.expires_at),
        }
        if with_book:
            data["book"] = {
                "id": self.book_id,
                "title": self.book.title,
                "author": self.book.author,
                "imageUrl": self.book.image_url,
            }
        return data
